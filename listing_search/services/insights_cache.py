"""Thirty-day cache of neighbourhood insights keyed by normalised address."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..db.records import INSIGHTS_CACHE, RecordStore
from ..models.places import InsightsCacheEntry
from ..utils.logging import get_logger

LOGGER = get_logger("services.insights_cache")

CACHE_TTL = timedelta(days=30)


def normalize_address(address: str) -> str:
    return address.strip().lower()


class InsightsCache:
    """Read-through store for insights; stale entries read as misses and are never evicted eagerly."""

    def __init__(
        self,
        records: RecordStore,
        ttl: timedelta = CACHE_TTL,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.records = records
        self.ttl = ttl
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def is_fresh(self, entry: InsightsCacheEntry) -> bool:
        fetched_at = entry.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return self.clock() - fetched_at < self.ttl

    async def get(self, address: str) -> Optional[InsightsCacheEntry]:
        key = normalize_address(address)
        row = await asyncio.to_thread(self.records.get, INSIGHTS_CACHE, key)
        if not row:
            LOGGER.debug("insights_cache_miss key=%s", key)
            return None
        entry = InsightsCacheEntry.model_validate(row)
        if not self.is_fresh(entry):
            LOGGER.info("insights_cache_stale key=%s fetched_at=%s", key, entry.fetched_at.isoformat())
            return None
        return entry

    async def put(self, address: str, entry: InsightsCacheEntry) -> None:
        key = normalize_address(address)
        await asyncio.to_thread(self.records.put, INSIGHTS_CACHE, key, entry.model_dump(mode="json"))
        LOGGER.debug("insights_cache_put key=%s", key)


__all__ = ["CACHE_TTL", "InsightsCache", "normalize_address"]
