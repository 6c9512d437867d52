"""Contract shared by the listing datastores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models.filters import Pagination
from ..services.query_builder import QueryConstraints

LISTINGS_TABLE = "property_listings"


@dataclass(frozen=True)
class QueryPage:
    rows: List[Dict] = field(default_factory=list)
    total: int = 0


@dataclass(frozen=True)
class PriceSummary:
    count: int = 0
    average: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0


def summarize_prices(prices: List[Optional[float]]) -> PriceSummary:
    values = [float(p) for p in prices if p is not None]
    if not values:
        return PriceSummary()
    return PriceSummary(
        count=len(values),
        average=sum(values) / len(values),
        minimum=min(values),
        maximum=max(values),
    )


class ListingRepository:
    """Base class for listing datastores; subclasses raise ``QueryFailure`` on backend errors."""

    mode = "abstract"

    def query(self, constraints: QueryConstraints, pagination: Pagination) -> QueryPage:
        raise NotImplementedError

    def price_summary(self, constraints: QueryConstraints) -> PriceSummary:
        raise NotImplementedError

    def count_visible(self) -> int:
        raise NotImplementedError

    def suggestion_rows(self) -> List[Dict]:
        raise NotImplementedError


__all__ = ["LISTINGS_TABLE", "ListingRepository", "PriceSummary", "QueryPage", "summarize_prices"]
