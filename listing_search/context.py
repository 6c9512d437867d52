"""Application assembly: builds every service once and hands them out explicitly."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import Settings, load_settings
from .db.records import RecordStore
from .db.repo import create_listing_repository, create_record_store, resolve_client
from .db.repository import ListingRepository
from .services.filter_executor import FilterExecutor
from .services.insights_cache import InsightsCache
from .services.insights_service import InsightsProvider, InsightsService
from .services.places_client import GooglePlacesClient
from .services.proximity import ProximityRanker
from .services.saved_filters import SavedFilterStore
from .services.search_session import SearchSession
from .utils.logging import configure_logging


@dataclass
class AppContext:
    settings: Settings
    repository: ListingRepository
    records: RecordStore
    executor: FilterExecutor
    saved_filters: SavedFilterStore
    insights_cache: InsightsCache
    ranker: ProximityRanker
    insights: InsightsService

    def new_session(self) -> SearchSession:
        return SearchSession(self.executor, debounce_s=self.settings.search_debounce_ms / 1000)


def build_context(
    settings: Optional[Settings] = None,
    repository: Optional[ListingRepository] = None,
    records: Optional[RecordStore] = None,
    places: Optional[InsightsProvider] = None,
) -> AppContext:
    settings = settings or load_settings()
    configure_logging(level=settings.log_level)

    client = None
    if repository is None or records is None:
        client = resolve_client(settings)
    repository = repository or create_listing_repository(settings, client)
    records = records or create_record_store(client)
    places = places or GooglePlacesClient(settings.google_maps_api_key, timeout=settings.places_timeout_s)

    executor = FilterExecutor(
        repository, page_size=settings.page_size, default_to_active=settings.default_to_active
    )
    cache = InsightsCache(records)
    ranker = ProximityRanker(places)
    return AppContext(
        settings=settings,
        repository=repository,
        records=records,
        executor=executor,
        saved_filters=SavedFilterStore(records),
        insights_cache=cache,
        ranker=ranker,
        insights=InsightsService(places, ranker, cache),
    )


__all__ = ["AppContext", "build_context"]
