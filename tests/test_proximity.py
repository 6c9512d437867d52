import asyncio

import pytest

from listing_search.errors import PlacesProviderFailure
from listing_search.models.places import Coordinate
from listing_search.services.proximity import (
    MAX_RESULTS,
    PlaceCategory,
    ProximityRanker,
    composite_score,
    haversine_km,
    rank_candidates,
)

ORIGIN = Coordinate(lat=-34.9285, lng=138.6007)
KM_PER_DEGREE = 111.195


def _place(name, km_north=0.5, rating=4.5, total=50, with_location=True):
    raw = {"name": name, "place_id": name.lower(), "rating": rating, "user_ratings_total": total, "types": ["school"]}
    if with_location:
        raw["geometry"] = {"location": {"lat": ORIGIN.lat + km_north / KM_PER_DEGREE, "lng": ORIGIN.lng}}
    return raw


class FakePlaces:
    def __init__(self, results=None, failing=()):
        self.results = results or {}
        self.failing = set(failing)
        self.calls = []

    def nearby_search(self, lat, lng, radius_m, place_type=None):
        self.calls.append((place_type, radius_m))
        if place_type in self.failing:
            raise PlacesProviderFailure("OVER_QUERY_LIMIT")
        return self.results.get(place_type, [])


def test_haversine_zero_and_symmetric():
    sydney = Coordinate(lat=-33.8688, lng=151.2093)
    melbourne = Coordinate(lat=-37.8136, lng=144.9631)
    assert haversine_km(sydney, sydney) == 0
    assert haversine_km(sydney, melbourne) == pytest.approx(haversine_km(melbourne, sydney))
    assert haversine_km(sydney, melbourne) == pytest.approx(714, abs=5)


def test_quality_floor_is_inclusive():
    candidates = [
        _place("Borderline", rating=3.0, total=10),
        _place("Low Rated", rating=2.9, total=500),
        _place("Few Reviews", rating=4.9, total=9),
        {"name": "Unrated", "user_ratings_total": 40},
    ]
    assert [p.name for p in rank_candidates(candidates, ORIGIN)] == ["Borderline"]


def test_at_most_six_results_best_first():
    candidates = [_place(f"School {i}", km_north=0.2, rating=3.0 + i * 0.2) for i in range(10)]
    ranked = rank_candidates(candidates, ORIGIN)
    assert len(ranked) == MAX_RESULTS
    assert ranked[0].name == "School 9"
    assert [p.score for p in ranked] == sorted((p.score for p in ranked), reverse=True)


def test_equal_ratings_rank_nearer_first():
    ranked = rank_candidates([_place("Far", km_north=1.8), _place("Near", km_north=0.5)], ORIGIN)
    assert [p.name for p in ranked] == ["Near", "Far"]
    assert ranked[0].distance_km == pytest.approx(0.5, abs=0.01)


def test_missing_location_ranks_as_distant():
    place = rank_candidates([_place("Nowhere", with_location=False)], ORIGIN)[0]
    assert place.distance_km is None
    assert place.score == pytest.approx(composite_score(4.5, 1000.0))


def test_rank_uses_category_radius_and_type():
    provider = FakePlaces({"school": [_place("Primary")]})
    ranked = asyncio.run(ProximityRanker(provider).rank(ORIGIN, PlaceCategory.SCHOOLS))
    assert [p.name for p in ranked] == ["Primary"]
    assert provider.calls == [("school", 2000)]


def test_rank_all_isolates_failing_categories():
    provider = FakePlaces({"school": [_place("Primary")], "park": [_place("Botanic")]}, failing={"gym"})
    results = asyncio.run(ProximityRanker(provider).rank_all(ORIGIN))
    assert set(results) == {category.value for category in PlaceCategory}
    assert results["gyms"] == []
    assert [p.name for p in results["schools"]] == ["Primary"]
    assert [p.name for p in results["parks"]] == ["Botanic"]


def test_explicit_zero_radius_is_passed_through():
    provider = FakePlaces()
    asyncio.run(ProximityRanker(provider).rank(ORIGIN, PlaceCategory.PARKS, radius_m=0))
    assert provider.calls == [("park", 0)]


def test_malformed_candidates_are_dropped_not_fatal():
    good = _place("Good")
    bad_rating = dict(_place("Bad Rating"), rating="n/a")
    bad_count = dict(_place("Bad Count"), user_ratings_total="lots")
    bad_geometry = dict(_place("Bad Geometry"), geometry={"location": {"lat": "north", "lng": 138.6}})
    provider = FakePlaces({"school": [bad_rating, good, bad_count, bad_geometry]})
    results = asyncio.run(ProximityRanker(provider).rank_all(ORIGIN))
    assert [p.name for p in results["schools"]] == ["Good", "Bad Geometry"]
    assert results["schools"][1].distance_km is None
