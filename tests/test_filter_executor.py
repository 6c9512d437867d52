import asyncio
from datetime import datetime, timezone

from listing_search.db.memory_repo import MemoryListingRepository
from listing_search.db.repository import ListingRepository
from listing_search.errors import QueryFailure
from listing_search.models.filters import FilterState, Pagination
from listing_search.services.filter_executor import FilterExecutor

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _listing(i: int, price: float, **extra):
    row = {
        "id": f"L{i}",
        "title": f"Listing {i}",
        "address": f"{i} Main St",
        "city": "Adelaide",
        "state": "SA",
        "price": price,
        "bedrooms": 2 + i % 3,
        "bathrooms": 1 + i % 2,
        "property_type": "house" if i % 2 else "apartment",
        "square_feet": 1000 + 100 * i,
        "year_built": 1990 + i,
        "features": ["pool", "garage"] if i % 2 else ["garage"],
        "status": "approved",
        "created_at": "2026-05-01T00:00:00+00:00",
    }
    row.update(extra)
    return row


def _rows():
    return [_listing(i, 100000 * i) for i in range(1, 11)]


def _executor(repo=None) -> FilterExecutor:
    return FilterExecutor(repo or MemoryListingRepository(_rows()), page_size=20, clock=lambda: NOW)


class SpyRepository(MemoryListingRepository):
    def __init__(self, rows):
        super().__init__(rows)
        self.queries = 0

    def query(self, constraints, pagination):
        self.queries += 1
        return super().query(constraints, pagination)


class FailingRepository(ListingRepository):
    mode = "failing"

    def query(self, constraints, pagination):
        raise QueryFailure("connection reset")

    def price_summary(self, constraints):
        raise QueryFailure("connection reset")

    def count_visible(self):
        return 0

    def suggestion_rows(self):
        raise QueryFailure("connection reset")


def test_empty_state_returns_empty_result_without_querying():
    repo = SpyRepository(_rows())
    result = asyncio.run(_executor(repo).apply(FilterState()))
    assert result.total_count == 0
    assert result.properties == []
    assert result.error is None
    assert repo.queries == 0


def test_unchecked_amenities_count_as_empty():
    repo = SpyRepository(_rows())
    asyncio.run(_executor(repo).apply(FilterState(nearby_amenities={"schools": False})))
    assert repo.queries == 0


def test_price_range_is_inclusive_on_both_ends():
    result = asyncio.run(_executor().apply(FilterState(price_min=300000, price_max=600000)))
    assert result.total_count == 4
    assert sorted(p["price"] for p in result.properties) == [300000.0, 400000.0, 500000.0, 600000.0]
    stats = result.filter_stats
    assert stats.matching_properties == 4
    assert stats.total_properties == 10
    assert stats.average_price == 450000.0
    assert (stats.price_range.min, stats.price_range.max) == (300000.0, 600000.0)


def test_adding_filters_never_grows_the_result():
    rows = _rows() + [_listing(11, 350000, status="pending"), _listing(12, 450000, status="sold")]
    executor = FilterExecutor(MemoryListingRepository(rows), clock=lambda: NOW)
    state = FilterState(price_min=100000)
    previous = asyncio.run(executor.apply(state)).total_count
    for change in (
        {"price_max": 800000},
        {"listing_status": ["active", "pending"]},
        {"features": ["garage"]},
        {"bedrooms": 3},
        {"property_type": "house"},
        {"square_footage_min": 1200},
    ):
        state = state.update(**change)
        count = asyncio.run(executor.apply(state)).total_count
        assert count <= previous
        previous = count


def test_selecting_statuses_only_narrows():
    rows = _rows() + [_listing(11, 350000, status="pending")]
    executor = FilterExecutor(MemoryListingRepository(rows), clock=lambda: NOW)
    base = FilterState(price_min=300000)
    unscoped = asyncio.run(executor.apply(base)).total_count
    active_or_pending = asyncio.run(executor.apply(base.update(listing_status=["active", "pending"]))).total_count
    pending = asyncio.run(executor.apply(base.update(listing_status=["pending"])))
    assert unscoped == 9
    assert active_or_pending == 9
    assert [p["id"] for p in pending.properties] == ["L11"]


def test_unlisted_statuses_are_never_searched():
    rows = _rows() + [_listing(11, 350000, status="draft"), _listing(12, 360000, status="rejected")]
    executor = FilterExecutor(MemoryListingRepository(rows), clock=lambda: NOW)
    result = asyncio.run(executor.apply(FilterState(price_min=300000, price_max=600000)))
    assert result.total_count == 4
    assert result.filter_stats.total_properties == 10


def test_pagination_and_sorting():
    pagination = Pagination(page=2, page_size=3, sort_by="price", sort_order="asc")
    result = asyncio.run(_executor().apply(FilterState(price_min=100000), pagination))
    assert [p["price"] for p in result.properties] == [400000.0, 500000.0, 600000.0]
    assert result.total_count == 10
    assert result.total_pages == 4
    assert result.has_more is True

    last = asyncio.run(_executor().apply(FilterState(price_min=100000), pagination.model_copy(update={"page": 4})))
    assert len(last.properties) == 1
    assert last.has_more is False


def test_datastore_failure_is_reported_on_the_result():
    result = asyncio.run(_executor(FailingRepository()).apply(FilterState(bedrooms=2)))
    assert result.properties == []
    assert result.total_count == 0
    assert result.failed
    assert result.error.kind == "query_failure"
    assert "connection reset" in result.error.message


def test_suggestions_from_visible_listings():
    suggestions = asyncio.run(_executor().suggestions())
    assert suggestions.property_types == ["apartment", "house"]
    assert (suggestions.price_range.min, suggestions.price_range.max) == (100000.0, 1000000.0)
    assert suggestions.bedroom_options == [2, 3, 4]
    assert suggestions.features == ["garage", "pool"]
    assert suggestions.locations == ["Adelaide, SA"]


def test_suggestions_fall_back_to_defaults_on_failure():
    suggestions = asyncio.run(_executor(FailingRepository()).suggestions())
    assert suggestions.property_types == []
    assert suggestions.price_range.max == 1_000_000.0


class FailingStatsRepository(MemoryListingRepository):
    def price_summary(self, constraints):
        raise QueryFailure("stats timeout")


def test_stats_failure_keeps_the_page():
    result = asyncio.run(_executor(FailingStatsRepository(_rows())).apply(FilterState(price_min=300000)))
    assert result.error is None
    assert result.total_count == 8
    assert len(result.properties) == 8
    assert result.filter_stats.matching_properties == 8
    assert result.filter_stats.average_price == 0.0
    assert result.filter_stats.total_properties == 0
