"""Run filter states against the listing datastore and assemble results."""

from __future__ import annotations

import asyncio
import math
from datetime import datetime
from typing import Callable, Optional, Tuple

from ..db.repository import ListingRepository, PriceSummary
from ..errors import QueryFailure
from ..models.filters import (
    FilterError,
    FilterResult,
    FilterState,
    FilterStats,
    FilterSuggestions,
    Pagination,
    PriceRange,
)
from ..utils.coerce import to_float, to_int
from ..utils.logging import get_logger
from . import query_builder

LOGGER = get_logger("services.filters")


class FilterExecutor:
    """Apply a :class:`FilterState` and return a fully formed :class:`FilterResult`.

    An empty state never reaches the datastore: it yields an empty result so the
    initial page load does not pull the entire listings table. Datastore
    failures are reported on ``FilterResult.error`` instead of being raised.
    """

    def __init__(
        self,
        repository: ListingRepository,
        page_size: int = 20,
        default_to_active: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repository = repository
        self.page_size = page_size
        self.default_to_active = default_to_active
        self.clock = clock

    async def apply(self, state: FilterState, pagination: Optional[Pagination] = None) -> FilterResult:
        pagination = pagination or Pagination(page_size=self.page_size)
        if state.is_empty():
            LOGGER.debug("filters_empty skipping_query=true")
            return FilterResult.empty(state, page=pagination.page)

        now = self.clock() if self.clock else None
        constraints = query_builder.build(state, now=now, default_to_active=self.default_to_active)
        LOGGER.info(
            "filters_apply fields=%s clauses=%s page=%s",
            ",".join(constraints.fields),
            len(constraints),
            pagination.page,
        )
        try:
            page, (summary, total_visible) = await asyncio.gather(
                asyncio.to_thread(self.repository.query, constraints, pagination),
                self._aggregates(constraints),
            )
        except QueryFailure as exc:
            LOGGER.error("filters_failed error=%s", exc)
            return FilterResult.empty(
                state, page=pagination.page, error=FilterError(kind="query_failure", message=str(exc))
            )

        total_pages = math.ceil(page.total / pagination.page_size) if page.total else 0
        return FilterResult(
            properties=page.rows,
            total_count=page.total,
            page=pagination.page,
            total_pages=total_pages,
            has_more=pagination.page < total_pages,
            applied_filters=state,
            filter_stats=_stats(page.total, total_visible, summary),
        )

    async def _aggregates(self, constraints: query_builder.QueryConstraints) -> Tuple[PriceSummary, int]:
        """Price aggregates and corpus size; a failure here degrades to zeros and keeps the page."""
        try:
            return await asyncio.gather(
                asyncio.to_thread(self.repository.price_summary, constraints),
                asyncio.to_thread(self.repository.count_visible),
            )
        except QueryFailure as exc:
            LOGGER.warning("filter_stats_failed error=%s", exc)
            return PriceSummary(), 0

    async def suggestions(self) -> FilterSuggestions:
        """Collect the option lists offered by the filter panel."""
        try:
            rows = await asyncio.to_thread(self.repository.suggestion_rows)
        except QueryFailure as exc:
            LOGGER.warning("filter_suggestions_failed error=%s", exc)
            return FilterSuggestions()

        prices = [p for p in (to_float(row.get("price")) for row in rows) if p is not None]
        bedrooms = {b for b in (to_int(row.get("bedrooms")) for row in rows) if b}
        bathrooms = {b for b in (to_float(row.get("bathrooms")) for row in rows) if b}
        features = {f for row in rows for f in (row.get("features") or [])}
        types = {row["property_type"] for row in rows if row.get("property_type")}
        locations = {
            f"{row['city']}, {row['state']}" for row in rows if row.get("city") and row.get("state")
        }
        price_range = PriceRange(min=min(prices), max=max(prices)) if prices else PriceRange(min=0.0, max=1_000_000.0)
        return FilterSuggestions(
            property_types=sorted(types),
            price_range=price_range,
            bedroom_options=sorted(bedrooms),
            bathroom_options=sorted(bathrooms),
            features=sorted(features),
            locations=sorted(locations),
        )


def _stats(matching: int, total_visible: int, summary: PriceSummary) -> FilterStats:
    return FilterStats(
        matching_properties=matching,
        total_properties=total_visible,
        average_price=summary.average,
        price_range=PriceRange(min=summary.minimum, max=summary.maximum),
    )


__all__ = ["FilterExecutor"]
