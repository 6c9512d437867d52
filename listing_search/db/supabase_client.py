"""Helper to create a Supabase client when credentials are provided."""

from __future__ import annotations

from typing import Optional

from supabase import Client, create_client

from ..config import Settings
from ..utils.logging import get_logger

LOGGER = get_logger("db.supabase")


def create_supabase_client(settings: Settings) -> Optional[Client]:
    if not settings.supabase_configured:
        LOGGER.info("Supabase credentials not configured; skipping client creation")
        return None
    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as exc:
        LOGGER.error("Failed to create Supabase client: %s", exc)
        return None
