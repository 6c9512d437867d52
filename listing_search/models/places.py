"""Pydantic models for nearby places, air quality and cached area insights."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class NearbyPlace(BaseModel):
    name: str
    place_id: Optional[str] = None
    location: Optional[Coordinate] = None
    rating: float
    user_ratings_total: int
    types: List[str] = Field(default_factory=list)
    vicinity: Optional[str] = None
    price_level: Optional[int] = None
    distance_km: Optional[float] = None
    score: float = 0.0


class PlaceDetail(BaseModel):
    place_id: str
    name: str
    formatted_address: Optional[str] = None
    location: Optional[Coordinate] = None
    rating: Optional[float] = None
    formatted_phone_number: Optional[str] = None
    website: Optional[str] = None


class AirQuality(BaseModel):
    aqi: Optional[int] = None
    category: Optional[str] = None
    dominant_pollutant: Optional[str] = None
    fetched_at: Optional[datetime] = None


class AreaScores(BaseModel):
    walk_score: int
    transit_score: int
    bike_score: int
    school_rating: float


class InsightsCacheEntry(BaseModel):
    address: str
    location: Optional[Coordinate] = None
    nearby_places: Dict[str, List[NearbyPlace]] = Field(default_factory=dict)
    air_quality: Optional[AirQuality] = None
    fetched_at: datetime


class PropertyInsights(BaseModel):
    address: str
    location: Optional[Coordinate] = None
    nearby_places: Dict[str, List[NearbyPlace]]
    area_scores: AreaScores
    air_quality: Optional[AirQuality] = None
    fetched_at: datetime
    from_cache: bool = False


__all__ = [
    "AirQuality",
    "AreaScores",
    "Coordinate",
    "InsightsCacheEntry",
    "NearbyPlace",
    "PlaceDetail",
    "PropertyInsights",
]
