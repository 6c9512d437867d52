"""Package logger for search, saved-filter and insights events.

Messages are written as ``event key=value`` pairs, e.g.
``filters_apply fields=price_min,bedrooms clauses=3 page=1`` or
``places_category_failed category=gyms error=...``.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging(namespace: str = "listing_search", level: Optional[str] = None) -> logging.Logger:
    """Set up the ``listing_search`` logger and return it.

    ``build_context`` calls this with ``Settings.log_level``; a later call only
    changes the level, the stream handler is attached once.
    """

    logger = logging.getLogger(namespace)
    if level:
        logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S")
    )
    logger.addHandler(handler)
    logger.setLevel((level or _LOG_LEVEL).upper())
    logger.propagate = False
    return logger


def get_logger(child: Optional[str] = None) -> logging.Logger:
    """Child of the package logger, e.g. ``get_logger("services.filters")``."""

    base = configure_logging()
    return base.getChild(child) if child else base


__all__ = ["configure_logging", "get_logger"]
