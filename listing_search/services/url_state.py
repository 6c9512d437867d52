"""Encode filter state to and from shareable URL query strings."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlencode

from ..models.filters import FilterState, Pagination

# Fields stored as repeated query keys, one value per label.
_MULTI_FIELDS = ("features", "listing_status", "accessibility_features")
_PAGINATION_FIELDS = ("page", "page_size", "sort_by", "sort_order")


def _alias(name: str, model=FilterState) -> str:
    return model.model_fields[name].alias or name


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(getattr(value, "value", value))


def encode_pairs(state: FilterState) -> List[Tuple[str, str]]:
    """Return the ``(key, value)`` pairs of every populated field."""

    pairs: List[Tuple[str, str]] = []
    for name in FilterState.model_fields:
        value = getattr(state, name)
        if value is None:
            continue
        key = _alias(name)
        if name in _MULTI_FIELDS:
            pairs.extend((key, label) for label in sorted(_format(item) for item in value))
        elif name == "nearby_amenities":
            pairs.extend((key, category) for category in state.active_amenities())
        else:
            pairs.append((key, _format(value)))
    return pairs


def encode(state: FilterState) -> str:
    return urlencode(encode_pairs(state))


def decode(query: str | Mapping[str, Any]) -> FilterState:
    """Rebuild a :class:`FilterState` from a query string or parsed params.

    Unknown keys are ignored and malformed values leave their field unset.
    """

    params = _parse(query)
    payload: Dict[str, Any] = {}
    for name in FilterState.model_fields:
        values = params.get(_alias(name)) or params.get(name)
        if not values:
            continue
        if name in _MULTI_FIELDS or name == "nearby_amenities":
            payload[name] = values
        else:
            payload[name] = values[-1]
    return FilterState.model_validate(payload)


def encode_with_pagination(state: FilterState, pagination: Optional[Pagination] = None) -> str:
    pairs = encode_pairs(state)
    if pagination is not None:
        defaults = Pagination()
        for name in _PAGINATION_FIELDS:
            value = getattr(pagination, name)
            # Only non-default values are written to keep shared URLs short.
            if value != getattr(defaults, name):
                pairs.append((_alias(name, Pagination), _format(value)))
    return urlencode(pairs)


def decode_pagination(query: str | Mapping[str, Any], page_size: Optional[int] = None) -> Pagination:
    params = _parse(query)
    payload: Dict[str, Any] = {}
    if page_size is not None:
        payload["page_size"] = page_size
    for name in _PAGINATION_FIELDS:
        values = params.get(_alias(name, Pagination)) or params.get(name)
        if values:
            payload[name] = values[-1]
    try:
        return Pagination.model_validate(payload)
    except ValueError:
        return Pagination(page_size=page_size) if page_size is not None else Pagination()


def _parse(query: str | Mapping[str, Any]) -> Dict[str, List[str]]:
    if isinstance(query, str):
        return parse_qs(query.lstrip("?"), keep_blank_values=False)
    parsed: Dict[str, List[str]] = {}
    for key, value in query.items():
        if isinstance(value, (list, tuple)):
            parsed[key] = [str(item) for item in value]
        elif value is not None:
            parsed[key] = [str(value)]
    return parsed


__all__ = ["decode", "decode_pagination", "encode", "encode_pairs", "encode_with_pagination"]
