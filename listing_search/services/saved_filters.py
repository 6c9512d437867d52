"""Named, per-owner snapshots of filter state."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..db.records import SAVED_FILTERS, RecordStore
from ..errors import DuplicateNameError
from ..models.filters import FilterState, SavedFilter
from ..utils.logging import get_logger

LOGGER = get_logger("services.saved_filters")


class SavedFilterStore:
    def __init__(self, records: RecordStore, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.records = records
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def save(self, owner_id: str, name: str, state: FilterState, overwrite: bool = False) -> SavedFilter:
        """Persist ``state`` under ``name``.

        Names are unique per owner (case-sensitive). A clash raises
        :class:`DuplicateNameError` unless ``overwrite`` is set, in which case the
        existing entry keeps its id and creation time.
        """

        name = name.strip()
        if not name:
            raise ValueError("Saved filter name must not be blank")
        existing = await self._find(owner_id, name)
        now = self.clock()
        if existing is not None and not overwrite:
            raise DuplicateNameError(owner_id, name)
        if existing is not None:
            saved = existing.model_copy(update={"filters": state, "updated_at": now})
        else:
            saved = SavedFilter(
                id=uuid.uuid4().hex, owner_id=owner_id, name=name, filters=state, created_at=now, updated_at=now
            )
        await asyncio.to_thread(self.records.put, SAVED_FILTERS, saved.id, saved.model_dump(mode="json"))
        LOGGER.info("saved_filter_stored owner=%s id=%s overwrite=%s", owner_id, saved.id, existing is not None)
        return saved

    async def list(self, owner_id: str) -> List[SavedFilter]:
        rows = await asyncio.to_thread(self.records.list, SAVED_FILTERS, owner_id)
        saved = [SavedFilter.model_validate(row) for row in rows]
        return sorted(saved, key=lambda item: item.created_at, reverse=True)

    async def get(self, filter_id: str) -> Optional[SavedFilter]:
        row = await asyncio.to_thread(self.records.get, SAVED_FILTERS, filter_id)
        return SavedFilter.model_validate(row) if row else None

    async def delete(self, filter_id: str) -> None:
        await asyncio.to_thread(self.records.delete, SAVED_FILTERS, filter_id)
        LOGGER.info("saved_filter_deleted id=%s", filter_id)

    async def exists(self, owner_id: str, name: str) -> bool:
        return await self._find(owner_id, name.strip()) is not None

    async def _find(self, owner_id: str, name: str) -> Optional[SavedFilter]:
        for saved in await self.list(owner_id):
            if saved.name == name:
                return saved
        return None


__all__ = ["SavedFilterStore"]
