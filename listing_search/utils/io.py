"""IO helpers for loading CSV data into pandas DataFrames."""

from __future__ import annotations

import os

import pandas as pd

from .logging import get_logger

LOGGER = get_logger("utils.io")

DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data"))


def load_csv(name: str) -> pd.DataFrame:
    """Load a CSV by filename from the data directory."""

    path = name if os.path.isabs(name) else os.path.join(DATA_DIR, name)
    if not os.path.exists(path):
        raise FileNotFoundError(f"CSV not found: {path}")
    LOGGER.debug("loading_csv path=%s", path)
    return pd.read_csv(path)


__all__ = ["load_csv", "DATA_DIR"]
