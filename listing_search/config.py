"""Runtime settings read from the environment (and ``.env`` when present)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .utils.coerce import to_bool, to_float, to_int

ENV_FILE = Path(__file__).resolve().parents[1] / ".env"


@dataclass(frozen=True)
class Settings:
    db_mode: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    listings_csv: Optional[str] = None
    google_maps_api_key: Optional[str] = None
    places_timeout_s: float = 10.0
    page_size: int = 20
    search_debounce_ms: int = 300
    log_level: str = "INFO"
    default_to_active: bool = True

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings(env_file: Optional[Path] = ENV_FILE) -> Settings:
    """Build :class:`Settings` from environment variables.

    ``.env`` values never override variables already present in the process
    environment.
    """

    if env_file is not None and env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)

    defaults = Settings()
    return Settings(
        db_mode=os.getenv("DB_MODE", defaults.db_mode).strip().lower(),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY") or None,
        listings_csv=os.getenv("LISTINGS_CSV") or None,
        google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY") or None,
        places_timeout_s=to_float(os.getenv("PLACES_TIMEOUT_S")) or defaults.places_timeout_s,
        page_size=to_int(os.getenv("PAGE_SIZE")) or defaults.page_size,
        search_debounce_ms=to_int(os.getenv("SEARCH_DEBOUNCE_MS")) or defaults.search_debounce_ms,
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        default_to_active=to_bool(os.getenv("DEFAULT_TO_ACTIVE")) is not False,
    )


__all__ = ["Settings", "load_settings"]
