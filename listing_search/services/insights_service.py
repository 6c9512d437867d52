"""Assemble neighbourhood insights for a property address."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

from ..models.places import AirQuality, AreaScores, Coordinate, InsightsCacheEntry, NearbyPlace, PropertyInsights
from ..utils.logging import get_logger
from .insights_cache import InsightsCache
from .proximity import PlaceCategory, ProximityRanker

LOGGER = get_logger("services.insights")


class InsightsProvider(Protocol):
    def geocode(self, address: str) -> List[Coordinate]:
        ...

    def air_quality(self, origin: Coordinate) -> AirQuality:
        ...


def area_scores(places: Dict[str, List[NearbyPlace]]) -> AreaScores:
    """Derive walk, transit and bike scores from the ranked place lists."""

    def count(category: PlaceCategory) -> int:
        return len(places.get(category.value, []))

    schools = places.get(PlaceCategory.SCHOOLS.value, [])
    school_rating = sum(s.rating for s in schools) / len(schools) if schools else 0.0
    return AreaScores(
        walk_score=min(100, 50 + count(PlaceCategory.RESTAURANTS) * 5 + count(PlaceCategory.TRANSIT) * 10),
        transit_score=min(100, count(PlaceCategory.TRANSIT) * 20),
        bike_score=min(100, 60 + count(PlaceCategory.PARKS) * 8),
        school_rating=round(school_rating, 1),
    )


class InsightsService:
    def __init__(
        self,
        provider: InsightsProvider,
        ranker: ProximityRanker,
        cache: InsightsCache,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.provider = provider
        self.ranker = ranker
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def insights(
        self, address: str, origin: Optional[Coordinate] = None, refresh: bool = False
    ) -> PropertyInsights:
        """Return insights for ``address``, using the cache unless ``refresh`` is set.

        Raises :class:`GeocodeFailure` when no ``origin`` is supplied and the
        address cannot be resolved.
        """

        if not refresh:
            cached = await self.cache.get(address)
            if cached is not None:
                return _to_insights(cached, from_cache=True)

        if origin is None:
            coords = await asyncio.to_thread(self.provider.geocode, address)
            origin = coords[0]

        places, air = await asyncio.gather(self.ranker.rank_all(origin), self._air_quality(origin))
        entry = InsightsCacheEntry(
            address=address.strip(),
            location=origin,
            nearby_places=places,
            air_quality=air,
            fetched_at=self.clock(),
        )
        await self.cache.put(address, entry)
        LOGGER.info(
            "insights_refreshed address=%s places=%s",
            address.strip(),
            sum(len(v) for v in places.values()),
        )
        return _to_insights(entry, from_cache=False)

    async def _air_quality(self, origin: Coordinate) -> Optional[AirQuality]:
        try:
            return await asyncio.to_thread(self.provider.air_quality, origin)
        except Exception as exc:
            LOGGER.warning("air_quality_failed lat=%s lng=%s error=%s", origin.lat, origin.lng, exc)
            return None


def _to_insights(entry: InsightsCacheEntry, from_cache: bool) -> PropertyInsights:
    return PropertyInsights(
        address=entry.address,
        location=entry.location,
        nearby_places=entry.nearby_places,
        area_scores=area_scores(entry.nearby_places),
        air_quality=entry.air_quality,
        fetched_at=entry.fetched_at,
        from_cache=from_cache,
    )


__all__ = ["InsightsService", "area_scores"]
