from fastapi.testclient import TestClient

from listing_search.api import create_app
from listing_search.config import Settings
from listing_search.context import build_context
from listing_search.db.memory_repo import MemoryListingRepository
from listing_search.db.records import MemoryRecordStore
from listing_search.errors import GeocodeFailure
from listing_search.models.places import Coordinate


class FakePlaces:
    def geocode(self, address):
        if "nowhere" in address.lower():
            raise GeocodeFailure(address)
        return [Coordinate(lat=-34.9285, lng=138.6007)]

    def nearby_search(self, lat, lng, radius_m, place_type=None):
        return []

    def air_quality(self, origin):
        return None


def _rows():
    return [
        {
            "id": f"L{i}",
            "title": f"Listing {i}",
            "city": "Adelaide",
            "state": "SA",
            "price": 100000 * i,
            "bedrooms": 3,
            "property_type": "house",
            "status": "approved",
            "created_at": "2026-05-01T00:00:00+00:00",
        }
        for i in range(1, 11)
    ]


def _client() -> TestClient:
    context = build_context(
        settings=Settings(),
        repository=MemoryListingRepository(_rows()),
        records=MemoryRecordStore(),
        places=FakePlaces(),
    )
    return TestClient(create_app(context))


def test_health():
    resp = _client().get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db_mode": "memory"}


def test_search_with_empty_filters_returns_nothing():
    resp = _client().post("/api/listings/search", json={})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total_count"] == 0
    assert payload["properties"] == []


def test_search_accepts_camel_case_filters():
    resp = _client().post(
        "/api/listings/search",
        json={"filters": {"priceMin": 300000, "priceMax": 600000}, "pagination": {"pageSize": 2, "sortBy": "price", "sortOrder": "asc"}},
    )
    payload = resp.json()
    assert payload["total_count"] == 4
    assert payload["total_pages"] == 2
    assert payload["has_more"] is True
    assert [p["price"] for p in payload["properties"]] == [300000.0, 400000.0]
    assert payload["filter_stats"]["average_price"] == 450000.0


def test_search_from_url_query():
    resp = _client().get("/api/listings/search?priceMin=300000&priceMax=600000&page=2&pageSize=3&sortBy=price&sortOrder=asc")
    payload = resp.json()
    assert payload["total_count"] == 4
    assert payload["page"] == 2
    assert [p["price"] for p in payload["properties"]] == [600000.0]


def test_filter_url_reports_validation_errors():
    resp = _client().post("/api/filters/url", json={"filters": {"priceMin": 500000, "priceMax": 100000}})
    payload = resp.json()
    assert payload["query"] == "priceMin=500000.0&priceMax=100000.0"
    assert payload["validation_errors"] == ["Minimum price cannot be greater than maximum price"]


def test_suggestions():
    payload = _client().get("/api/filters/suggestions").json()
    assert payload["property_types"] == ["house"]
    assert payload["locations"] == ["Adelaide, SA"]


def test_saved_filter_lifecycle():
    client = _client()
    body = {"name": "My Search", "filters": {"bedrooms": 3}}
    created = client.post("/api/users/u1/saved-filters", json=body)
    assert created.status_code == 201
    assert client.post("/api/users/u1/saved-filters", json=body).status_code == 409

    listed = client.get("/api/users/u1/saved-filters").json()
    assert [s["name"] for s in listed] == ["My Search"]

    filter_id = created.json()["id"]
    assert client.delete(f"/api/saved-filters/{filter_id}").status_code == 204
    assert client.delete(f"/api/saved-filters/{filter_id}").status_code == 204
    assert client.get("/api/users/u1/saved-filters").json() == []


def test_insights_endpoint():
    client = _client()
    first = client.get("/api/insights", params={"address": "12 Main St"})
    assert first.status_code == 200
    assert first.json()["from_cache"] is False
    assert client.get("/api/insights", params={"address": "12 main st"}).json()["from_cache"] is True


def test_insights_unknown_address_is_unprocessable():
    resp = _client().get("/api/insights", params={"address": "Nowhere Road"})
    assert resp.status_code == 422
