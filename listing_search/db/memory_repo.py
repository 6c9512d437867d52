"""In-memory listing datastore backed by a pandas DataFrame."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..errors import QueryFailure
from ..models.filters import Pagination
from ..services.query_builder import SEARCHABLE_STATUSES, VISIBLE_STATUS, QueryConstraints
from ..utils.io import load_csv
from ..utils.logging import get_logger
from .mappers import map_listing_row
from .repository import ListingRepository, PriceSummary, QueryPage, summarize_prices

LOGGER = get_logger("db.memory")

SUGGESTION_COLUMNS = ["property_type", "price", "features", "city", "state", "bedrooms", "bathrooms"]


class MemoryListingRepository(ListingRepository):
    mode = "memory"

    def __init__(self, rows: Optional[Iterable[Dict]] = None) -> None:
        records = [map_listing_row(row) for row in (rows or [])]
        self._listings = pd.DataFrame.from_records(records)
        LOGGER.info("memory_repository_loaded rows=%s", len(self._listings))

    @classmethod
    def from_csv(cls, name: str) -> "MemoryListingRepository":
        return cls(load_csv(name).to_dict("records"))

    # ------------------------------------------------------------------
    def query(self, constraints: QueryConstraints, pagination: Pagination) -> QueryPage:
        matched = self._matching(constraints)
        total = len(matched)
        if total == 0:
            return QueryPage(rows=[], total=0)
        if pagination.sort_by in matched.columns:
            matched = matched.sort_values(
                pagination.sort_by,
                ascending=pagination.sort_order == "asc",
                na_position="last",
                kind="stable",
            )
        window = matched.iloc[pagination.offset : pagination.offset + pagination.page_size]
        return QueryPage(rows=_records(window), total=total)

    def price_summary(self, constraints: QueryConstraints) -> PriceSummary:
        matched = self._matching(constraints)
        if matched.empty:
            return PriceSummary()
        prices = pd.to_numeric(matched["price"], errors="coerce").dropna()
        return summarize_prices(prices.tolist())

    def count_visible(self) -> int:
        if self._listings.empty:
            return 0
        return int(self._listings["status"].isin(SEARCHABLE_STATUSES).sum())

    def suggestion_rows(self) -> List[Dict]:
        if self._listings.empty:
            return []
        visible = self._listings[self._listings["status"] == VISIBLE_STATUS]
        return _records(visible[SUGGESTION_COLUMNS])

    # ------------------------------------------------------------------
    def _matching(self, constraints: QueryConstraints) -> pd.DataFrame:
        df = self._listings
        if df.empty:
            return df
        try:
            mask = df.apply(lambda row: constraints.matches(row.to_dict()), axis=1).astype(bool)
        except (TypeError, ValueError, KeyError) as exc:
            raise QueryFailure(f"Failed to evaluate constraints: {exc}") from exc
        return df[mask]


def _records(df: pd.DataFrame) -> List[Dict]:
    return [map_listing_row(record) for record in df.to_dict("records")]
