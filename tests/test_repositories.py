from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from listing_search.config import Settings, load_settings
from listing_search.db.memory_repo import MemoryListingRepository
from listing_search.db.records import SAVED_FILTERS, MemoryRecordStore, SupabaseRecordStore
from listing_search.db.repo import create_listing_repository
from listing_search.db.supabase_repo import PRICE_PAGE_SIZE, SupabaseListingRepository, or_filter
from listing_search.errors import QueryFailure
from listing_search.models.filters import FilterState, Pagination
from listing_search.services.query_builder import AnyOf, build

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


class FakeQuery:
    """Records every builder call and returns a canned response on ``execute``."""

    def __init__(self, log, response=None, error=None):
        self.log = log
        self.response = response or SimpleNamespace(data=[], count=0)
        self.error = error

    def __getattr__(self, name):
        def call(*args, **kwargs):
            self.log.append((name, args, kwargs))
            return self

        return call

    def execute(self):
        if self.error:
            raise self.error
        return self.response


class FakeClient:
    def __init__(self, response=None, error=None, pages=None):
        self.log = []
        self.response = response
        self.error = error
        self.pages = list(pages or [])

    def table(self, name):
        self.log.append(("table", (name,), {}))
        response = SimpleNamespace(data=self.pages.pop(0), count=None) if self.pages else self.response
        return FakeQuery(self.log, response, self.error)


def test_supabase_query_translates_constraints():
    response = SimpleNamespace(data=[{"id": 7, "title": "Villa", "price": "450000", "features": ["pool"]}], count=31)
    client = FakeClient(response)
    repo = SupabaseListingRepository(client)
    constraints = build(FilterState(price_min=300000, features=["pool"]), now=NOW)
    page = repo.query(constraints, Pagination(page=2, page_size=10, sort_by="price", sort_order="asc"))

    assert page.total == 31
    assert page.rows[0]["price"] == 450000.0
    assert page.rows[0]["id"] == "7"
    calls = [(name, args) for name, args, _ in client.log]
    assert ("table", ("property_listings",)) in calls
    assert ("gte", ("price", 300000.0)) in calls
    assert ("contains", ("features", ["pool"])) in calls
    assert ("in_", ("status", ["approved", "pending", "sold"])) in calls
    assert ("range", (10, 19)) in calls


def test_supabase_failure_becomes_query_failure():
    repo = SupabaseListingRepository(FakeClient(error=RuntimeError("timeout")))
    with pytest.raises(QueryFailure):
        repo.query(build(FilterState(bedrooms=2), now=NOW), Pagination())


def test_price_summary_pages_past_the_row_cap():
    full_page = [{"price": 100000}] * PRICE_PAGE_SIZE
    client = FakeClient(pages=[full_page, [{"price": 400000}, {"price": None}]])
    summary = SupabaseListingRepository(client).price_summary(build(FilterState(bedrooms=2), now=NOW))
    assert summary.count == PRICE_PAGE_SIZE + 1
    assert summary.maximum == 400000.0
    ranges = [args for name, args, _ in client.log if name == "range"]
    assert ranges == [(0, PRICE_PAGE_SIZE - 1), (PRICE_PAGE_SIZE, 2 * PRICE_PAGE_SIZE - 1)]


def test_status_group_renders_postgrest_or_tree():
    constraints = build(FilterState(listing_status=["pending", "new"]), now=NOW)
    group = next(c for c in constraints.clauses if isinstance(c, AnyOf))
    assert or_filter(group) == 'status.in.(pending),and(status.eq.approved,created_at.gte."2026-05-18T00:00:00+00:00")'


def test_search_term_renders_one_option_per_column():
    constraints = build(FilterState(search_term="harbour"), now=NOW)
    group = constraints.clauses[0]
    assert or_filter(group) == "title.ilike.*harbour*,description.ilike.*harbour*,address.ilike.*harbour*"


def test_memory_repository_loads_semicolon_lists_from_csv(tmp_path):
    path = tmp_path / "listings.csv"
    path.write_text(
        "id,title,price,bedrooms,features,status,created_at\n"
        "1,Cottage,320000,2,garden;fireplace,approved,2026-05-01T00:00:00+00:00\n"
        "2,Loft,510000,,lift,approved,2026-05-02T00:00:00+00:00\n"
    )
    repo = MemoryListingRepository.from_csv(str(path))
    page = repo.query(build(FilterState(features=["fireplace"]), now=NOW), Pagination())
    assert [row["title"] for row in page.rows] == ["Cottage"]
    assert page.rows[0]["features"] == ["garden", "fireplace"]
    assert repo.count_visible() == 2


def test_missing_csv_starts_with_empty_corpus():
    repo = create_listing_repository(Settings(listings_csv="/nonexistent/listings.csv"))
    assert isinstance(repo, MemoryListingRepository)
    assert repo.count_visible() == 0


def test_memory_record_store_scopes_list_by_owner():
    store = MemoryRecordStore()
    store.put(SAVED_FILTERS, "a", {"id": "a", "owner_id": "u1"})
    store.put(SAVED_FILTERS, "b", {"id": "b", "owner_id": "u2"})
    assert [r["id"] for r in store.list(SAVED_FILTERS, "u1")] == ["a"]
    record = store.get(SAVED_FILTERS, "a")
    record["owner_id"] = "changed"
    assert store.get(SAVED_FILTERS, "a")["owner_id"] == "u1"


def test_supabase_record_store_upserts_on_key_column():
    client = FakeClient()
    SupabaseRecordStore(client).put(SAVED_FILTERS, "a", {"owner_id": "u1"})
    upsert = next((args, kwargs) for name, args, kwargs in client.log if name == "upsert")
    assert upsert == (({"owner_id": "u1", "id": "a"},), {"on_conflict": "id"})


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("DB_MODE", "Supabase")
    monkeypatch.setenv("PAGE_SIZE", "50")
    monkeypatch.setenv("DEFAULT_TO_ACTIVE", "false")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    settings = load_settings(env_file=None)
    assert settings.db_mode == "supabase"
    assert settings.page_size == 50
    assert settings.default_to_active is False
    assert settings.supabase_configured is False
