"""Thin client for the Google Maps geocoding, places and air-quality APIs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from ..errors import GeocodeFailure, PlacesProviderFailure
from ..models.places import AirQuality, Coordinate, PlaceDetail
from ..utils.logging import get_logger

LOGGER = get_logger("services.places_client")

MAPS_BASE = "https://maps.googleapis.com/maps/api"
AIR_QUALITY_URL = "https://airquality.googleapis.com/v1/currentConditions:lookup"
DETAIL_FIELDS = "place_id,formatted_address,geometry,name,rating,formatted_phone_number,website"
OK_STATUSES = {"OK", "ZERO_RESULTS"}


class GooglePlacesClient:
    def __init__(self, api_key: Optional[str], timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise PlacesProviderFailure("Google Maps API key not configured")
        try:
            resp = self.session.get(f"{MAPS_BASE}{path}", params={**params, "key": self.api_key}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise PlacesProviderFailure(f"Google Maps request failed: {exc}") from exc
        status = data.get("status")
        if status not in OK_STATUSES:
            raise PlacesProviderFailure(data.get("error_message") or f"Google Maps API returned status: {status}")
        return data

    def nearby_search(self, lat: float, lng: float, radius_m: int, place_type: Optional[str] = None) -> List[Dict]:
        params: Dict[str, Any] = {"location": f"{lat},{lng}", "radius": str(radius_m)}
        if place_type:
            params["type"] = place_type
        return self._get("/place/nearbysearch/json", params).get("results", [])

    def geocode(self, address: str) -> List[Coordinate]:
        if not address or not address.strip():
            raise GeocodeFailure(address, "Address is required")
        try:
            results = self._get("/geocode/json", {"address": address}).get("results", [])
        except PlacesProviderFailure as exc:
            raise GeocodeFailure(address, str(exc)) from exc
        coords = [
            Coordinate(lat=r["geometry"]["location"]["lat"], lng=r["geometry"]["location"]["lng"])
            for r in results
            if r.get("geometry", {}).get("location")
        ]
        if not coords:
            raise GeocodeFailure(address)
        return coords

    def place_details(self, place_id: str) -> PlaceDetail:
        result = self._get("/place/details/json", {"place_id": place_id, "fields": DETAIL_FIELDS}).get("result")
        if not result:
            raise PlacesProviderFailure(f"No details for place {place_id}")
        location = (result.get("geometry") or {}).get("location")
        return PlaceDetail(
            place_id=result.get("place_id", place_id),
            name=result.get("name", ""),
            formatted_address=result.get("formatted_address"),
            location=Coordinate(lat=location["lat"], lng=location["lng"]) if location else None,
            rating=result.get("rating"),
            formatted_phone_number=result.get("formatted_phone_number"),
            website=result.get("website"),
        )

    def air_quality(self, origin: Coordinate) -> AirQuality:
        if not self.api_key:
            raise PlacesProviderFailure("Google Maps API key not configured")
        body = {"location": {"latitude": origin.lat, "longitude": origin.lng}}
        try:
            resp = self.session.post(AIR_QUALITY_URL, params={"key": self.api_key}, json=body, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise PlacesProviderFailure(f"Air quality request failed: {exc}") from exc
        indexes = data.get("indexes") or []
        index = indexes[0] if indexes else {}
        return AirQuality(
            aqi=index.get("aqi"),
            category=index.get("category"),
            dominant_pollutant=index.get("dominantPollutant"),
            fetched_at=datetime.now(timezone.utc),
        )


__all__ = ["GooglePlacesClient"]
