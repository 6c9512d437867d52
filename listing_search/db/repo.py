"""Select the memory or Supabase backed stores from settings."""

from __future__ import annotations

from typing import Optional

from supabase import Client

from ..config import Settings
from ..utils.logging import get_logger
from .memory_repo import MemoryListingRepository
from .records import MemoryRecordStore, RecordStore, SupabaseRecordStore
from .repository import ListingRepository
from .supabase_client import create_supabase_client
from .supabase_repo import SupabaseListingRepository

LOGGER = get_logger("db.repo")


def resolve_client(settings: Settings) -> Optional[Client]:
    if settings.db_mode != "supabase":
        return None
    client = create_supabase_client(settings)
    if client is None:
        LOGGER.warning("Supabase mode requested but no client available; falling back to memory")
    return client


def create_listing_repository(settings: Settings, client: Optional[Client] = None) -> ListingRepository:
    if client is not None:
        LOGGER.info("Listing repository running in Supabase mode")
        return SupabaseListingRepository(client)
    if settings.listings_csv:
        try:
            repo = MemoryListingRepository.from_csv(settings.listings_csv)
            LOGGER.info("Listing repository running in memory mode from %s", settings.listings_csv)
            return repo
        except FileNotFoundError as exc:
            LOGGER.warning("Failed to load listings CSV (%s); starting with an empty corpus", exc)
    LOGGER.info("Listing repository running in memory mode")
    return MemoryListingRepository()


def create_record_store(client: Optional[Client] = None) -> RecordStore:
    if client is not None:
        return SupabaseRecordStore(client)
    return MemoryRecordStore()


__all__ = ["create_listing_repository", "create_record_store", "resolve_client"]
