"""Rank nearby points of interest by rating and distance."""

from __future__ import annotations

import asyncio
import math
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..models.places import Coordinate, NearbyPlace
from ..utils.coerce import to_float, to_int
from ..utils.logging import get_logger

LOGGER = get_logger("services.proximity")

EARTH_RADIUS_KM = 6371.0
MIN_RATING = 3.0
MIN_RATING_COUNT = 10
RATING_WEIGHT = 0.7
DISTANCE_WEIGHT = 0.3
MAX_RESULTS = 6
# Candidates without coordinates rank as if this far away.
MISSING_DISTANCE_KM = 1000.0


class PlaceCategory(str, Enum):
    SCHOOLS = "schools"
    RESTAURANTS = "restaurants"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    PARKS = "parks"
    TRANSIT = "transit"
    GYMS = "gyms"

    @property
    def provider_type(self) -> str:
        return CATEGORY_SEARCH[self][0]

    @property
    def radius_m(self) -> int:
        return CATEGORY_SEARCH[self][1]


CATEGORY_SEARCH = {
    PlaceCategory.SCHOOLS: ("school", 2000),
    PlaceCategory.RESTAURANTS: ("restaurant", 1000),
    PlaceCategory.SHOPPING: ("shopping_mall", 1500),
    PlaceCategory.HEALTHCARE: ("hospital", 3000),
    PlaceCategory.PARKS: ("park", 1500),
    PlaceCategory.TRANSIT: ("transit_station", 1000),
    PlaceCategory.GYMS: ("gym", 1500),
}


class PlacesProvider(Protocol):
    def nearby_search(self, lat: float, lng: float, radius_m: int, place_type: Optional[str] = None) -> List[Dict]:
        ...


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def composite_score(rating: float, distance_km: Optional[float]) -> float:
    distance = MISSING_DISTANCE_KM if distance_km is None else distance_km
    return rating * RATING_WEIGHT - (distance / 1000) * DISTANCE_WEIGHT


def passes_quality_floor(raw: Mapping[str, Any]) -> bool:
    rating = to_float(raw.get("rating"))
    count = to_int(raw.get("user_ratings_total"))
    if not raw.get("name") or rating is None or count is None:
        return False
    return rating >= MIN_RATING and count >= MIN_RATING_COUNT


def to_nearby_place(raw: Mapping[str, Any], origin: Coordinate) -> NearbyPlace:
    loc = (raw.get("geometry") or {}).get("location") or {}
    location = None
    distance = None
    lat, lng = to_float(loc.get("lat")), to_float(loc.get("lng"))
    if lat is not None and lng is not None and abs(lat) <= 90 and abs(lng) <= 180:
        location = Coordinate(lat=lat, lng=lng)
        distance = haversine_km(origin, location)
    rating = to_float(raw["rating"])
    return NearbyPlace(
        name=raw["name"],
        place_id=raw.get("place_id"),
        location=location,
        rating=rating,
        user_ratings_total=to_int(raw.get("user_ratings_total")),
        types=list(raw.get("types") or []),
        vicinity=raw.get("vicinity"),
        price_level=raw.get("price_level"),
        distance_km=distance,
        score=composite_score(rating, distance),
    )


def rank_candidates(candidates: List[Mapping[str, Any]], origin: Coordinate) -> List[NearbyPlace]:
    places = [to_nearby_place(raw, origin) for raw in candidates if passes_quality_floor(raw)]
    places.sort(key=lambda place: place.score, reverse=True)
    return places[:MAX_RESULTS]


class ProximityRanker:
    def __init__(self, provider: PlacesProvider) -> None:
        self.provider = provider

    async def rank(
        self, origin: Coordinate, category: PlaceCategory, radius_m: Optional[int] = None
    ) -> List[NearbyPlace]:
        radius = category.radius_m if radius_m is None else radius_m
        candidates = await asyncio.to_thread(
            self.provider.nearby_search, origin.lat, origin.lng, radius, category.provider_type
        )
        ranked = rank_candidates(candidates, origin)
        LOGGER.debug("places_ranked category=%s candidates=%s kept=%s", category.value, len(candidates), len(ranked))
        return ranked

    async def rank_all(self, origin: Coordinate) -> Dict[str, List[NearbyPlace]]:
        """Rank every category concurrently; a failed category comes back empty."""
        categories = list(PlaceCategory)
        outcomes = await asyncio.gather(
            *(self.rank(origin, category) for category in categories), return_exceptions=True
        )
        results: Dict[str, List[NearbyPlace]] = {}
        for category, outcome in zip(categories, outcomes):
            if isinstance(outcome, Exception):
                LOGGER.warning("places_category_failed category=%s error=%s", category.value, outcome)
                results[category.value] = []
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[category.value] = outcome
        return results


__all__ = [
    "PlaceCategory",
    "PlacesProvider",
    "ProximityRanker",
    "composite_score",
    "haversine_km",
    "passes_quality_floor",
    "rank_candidates",
]
