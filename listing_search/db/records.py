"""Keyed record persistence for saved filters and cached insights."""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, List, Optional

from supabase import Client

from ..errors import QueryFailure
from ..utils.logging import get_logger

LOGGER = get_logger("db.records")

SAVED_FILTERS = "saved_filters"
INSIGHTS_CACHE = "property_insights_cache"

# collection -> (primary key column, owner column)
COLLECTION_KEYS: Dict[str, tuple] = {
    SAVED_FILTERS: ("id", "owner_id"),
    INSIGHTS_CACHE: ("address_key", None),
}


class RecordStore:
    """Single-record get/put/delete plus listing by owner. Last write wins."""

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def put(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, key: str) -> None:
        raise NotImplementedError

    def list(self, collection: str, owner: Optional[str] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError


class MemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._collections.get(collection, {}).get(key)
            return copy.deepcopy(record) if record is not None else None

    def put(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[key] = copy.deepcopy(record)

    def delete(self, collection: str, key: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(key, None)

    def list(self, collection: str, owner: Optional[str] = None) -> List[Dict[str, Any]]:
        _, owner_column = COLLECTION_KEYS.get(collection, ("id", "owner_id"))
        with self._lock:
            records = list(self._collections.get(collection, {}).values())
        if owner is not None:
            records = [r for r in records if r.get(owner_column or "owner_id") == owner]
        return copy.deepcopy(records)


class SupabaseRecordStore(RecordStore):
    def __init__(self, client: Client) -> None:
        self.client = client

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        key_column, _ = COLLECTION_KEYS[collection]
        rows = self._run(
            self.client.table(collection).select("*").eq(key_column, key).limit(1), collection, "get"
        ).data or []
        return rows[0] if rows else None

    def put(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        key_column, _ = COLLECTION_KEYS[collection]
        row = dict(record)
        row[key_column] = key
        self._run(self.client.table(collection).upsert(row, on_conflict=key_column), collection, "put")

    def delete(self, collection: str, key: str) -> None:
        key_column, _ = COLLECTION_KEYS[collection]
        self._run(self.client.table(collection).delete().eq(key_column, key), collection, "delete")

    def list(self, collection: str, owner: Optional[str] = None) -> List[Dict[str, Any]]:
        _, owner_column = COLLECTION_KEYS[collection]
        query = self.client.table(collection).select("*")
        if owner is not None and owner_column:
            query = query.eq(owner_column, owner)
        return self._run(query, collection, "list").data or []

    def _run(self, query, collection: str, operation: str):
        try:
            return query.execute()
        except Exception as exc:
            LOGGER.error("record_store_failed collection=%s operation=%s error=%s", collection, operation, exc)
            raise QueryFailure(f"{collection} {operation} failed: {exc}") from exc


__all__ = [
    "INSIGHTS_CACHE",
    "MemoryRecordStore",
    "RecordStore",
    "SAVED_FILTERS",
    "SupabaseRecordStore",
]
