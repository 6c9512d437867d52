import math
from typing import Any, Iterable, Optional


def to_int(v) -> Optional[int]:
    f = to_float(v)
    if f is None:
        return None
    return int(f)


def to_float(v) -> Optional[float]:
    try:
        if v is None or isinstance(v, bool) or v == "" or str(v).strip().lower() in ("null", "undefined", "nan"):
            return None
        result = float(v)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def to_str(v) -> str:
    return "" if v is None else str(v)


def to_opt_str(v) -> Optional[str]:
    if v is None:
        return None
    text = str(v)
    return text if text.strip() else None


def to_bool(v) -> Optional[bool]:
    if v is None or v == "":
        return None
    if isinstance(v, bool):
        return v
    text = str(v).strip().lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    return None


def to_labels(v: Any) -> frozenset:
    """Normalise a label collection (list, set or comma string) to a frozenset."""
    if v is None:
        return frozenset()
    if isinstance(v, str):
        v = v.split(",")
    if not isinstance(v, Iterable):
        return frozenset()
    labels = (str(getattr(item, "value", item)).strip() for item in v if item is not None)
    return frozenset(label for label in labels if label)


def is_missing(v: Any) -> bool:
    return v is None or (isinstance(v, float) and math.isnan(v))
