"""Translate a :class:`FilterState` into datastore-agnostic query constraints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import ValidationError
from ..models.filters import FLAG_FIELDS, FilterState, ListingStatus
from ..utils.coerce import is_missing, to_float
from ..utils.logging import get_logger

LOGGER = get_logger("services.query_builder")

MIN_YEAR_BUILT = 1800
NEW_LISTING_DAYS = 14
VISIBLE_STATUS = "approved"

STATUS_COLUMN_VALUES = {
    ListingStatus.ACTIVE: VISIBLE_STATUS,
    ListingStatus.PENDING: "pending",
    ListingStatus.SOLD: "sold",
}

# Every status a listing_status selection can reach; the default scope when none is selected.
SEARCHABLE_STATUSES = tuple(sorted(set(STATUS_COLUMN_VALUES.values())))

# state field -> (column, operator) for inclusive numeric bounds.
RANGE_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("price_min", "price", "gte"),
    ("price_max", "price", "lte"),
    ("bedrooms", "bedrooms", "gte"),
    ("bathrooms", "bathrooms", "gte"),
    ("square_footage_min", "square_feet", "gte"),
    ("square_footage_max", "square_feet", "lte"),
    ("year_built_min", "year_built", "gte"),
    ("year_built_max", "year_built", "lte"),
    ("lot_size_min", "lot_size", "gte"),
    ("lot_size_max", "lot_size", "lte"),
    ("garage_spaces", "garages", "gte"),
    ("hoa_min", "hoa_fee", "gte"),
    ("hoa_max", "hoa_fee", "lte"),
)

SEARCH_COLUMNS = ("title", "description", "address")
LOCATION_COLUMNS = ("city", "state", "address")


class Op(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    CONTAINS_ALL = "contains_all"
    OVERLAPS = "overlaps"
    ILIKE = "ilike"
    IEQ = "ieq"


@dataclass(frozen=True)
class Constraint:
    """A single narrowing condition on one listing column."""

    column: str
    op: Op
    value: Any

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.column)
        if self.op in (Op.CONTAINS_ALL, Op.OVERLAPS):
            labels = _as_labels(actual)
            wanted = set(self.value)
            if self.op is Op.CONTAINS_ALL:
                return wanted.issubset(labels)
            return bool(wanted & labels)
        if is_missing(actual):
            return False
        if self.op is Op.EQ:
            return actual == self.value
        if self.op is Op.IN:
            return actual in self.value
        if self.op is Op.ILIKE:
            return str(self.value).lower() in str(actual).lower()
        if self.op is Op.IEQ:
            return str(actual).strip().lower() == str(self.value).lower()
        if isinstance(self.value, datetime):
            actual = _as_datetime(actual)
            if actual is None:
                return False
        else:
            actual = to_float(actual)
            if actual is None:
                return False
        if self.op is Op.GTE:
            return actual >= self.value
        return actual <= self.value


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of conjunctions: a row matches when any option fully matches."""

    label: str
    options: Tuple[Tuple[Constraint, ...], ...]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return any(all(c.matches(row) for c in option) for option in self.options)


Clause = Union[Constraint, AnyOf]


@dataclass(frozen=True)
class QueryConstraints:
    clauses: Tuple[Clause, ...] = ()
    fields: Tuple[str, ...] = ()

    def matches(self, row: Mapping[str, Any]) -> bool:
        return all(clause.matches(row) for clause in self.clauses)

    def __len__(self) -> int:
        return len(self.clauses)


def build(
    state: FilterState,
    now: Optional[datetime] = None,
    default_to_active: bool = True,
) -> QueryConstraints:
    """Derive one clause per populated field of ``state``.

    Unset fields produce nothing. Invalid numbers are dropped with a warning
    rather than failing the whole query.
    """

    now = now or datetime.now(timezone.utc)
    clauses: List[Clause] = []
    used: List[str] = []

    if state.search_term:
        clauses.append(_any_ilike("search_term", SEARCH_COLUMNS, [state.search_term.strip()]))
        used.append("search_term")

    if state.location:
        clauses.append(_any_ilike("location", LOCATION_COLUMNS, location_terms(state.location)))
        used.append("location")

    for name, column, op in RANGE_FIELDS:
        raw = getattr(state, name)
        if raw is None:
            continue
        try:
            value = _checked_number(name, raw, now)
        except ValidationError as exc:
            LOGGER.warning("constraint_dropped field=%s reason=%s", exc.field, exc.reason)
            continue
        clauses.append(Constraint(column, Op(op), value))
        used.append(name)

    if state.property_type is not None:
        clauses.append(Constraint("property_type", Op.IEQ, state.property_type.value))
        used.append("property_type")

    if state.features:
        clauses.append(Constraint("features", Op.CONTAINS_ALL, tuple(sorted(state.features))))
        used.append("features")

    if state.accessibility_features:
        clauses.append(
            Constraint("accessibility_features", Op.CONTAINS_ALL, tuple(sorted(state.accessibility_features)))
        )
        used.append("accessibility_features")

    amenities = state.active_amenities()
    if amenities:
        clauses.append(Constraint("nearby_amenities", Op.OVERLAPS, tuple(amenities)))
        used.append("nearby_amenities")

    if state.listing_status:
        clauses.append(_status_group(state.listing_status, now))
        used.append("listing_status")
    elif default_to_active:
        clauses.append(Constraint("status", Op.IN, SEARCHABLE_STATUSES))

    if state.days_on_market is not None:
        if state.days_on_market < 0:
            LOGGER.warning("constraint_dropped field=days_on_market reason=negative")
        else:
            cutoff = now - timedelta(days=state.days_on_market)
            clauses.append(Constraint("created_at", Op.GTE, cutoff))
            used.append("days_on_market")

    for name in FLAG_FIELDS:
        flag = getattr(state, name)
        if flag is not None:
            clauses.append(Constraint(name, Op.EQ, flag))
            used.append(name)

    return QueryConstraints(clauses=tuple(clauses), fields=tuple(used))


def location_terms(location: str) -> List[str]:
    """Expand a free-text location into the full string plus its comma-separated parts."""

    terms = [location.strip()]
    for part in location.split(","):
        part = part.strip()
        if len(part) > 2:
            terms.append(part)
    seen = set()
    unique: List[str] = []
    for term in terms:
        key = term.lower()
        if term and key not in seen:
            seen.add(key)
            unique.append(term)
    return unique


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _checked_number(name: str, raw: Any, now: datetime) -> float:
    value = to_float(raw)
    if value is None:
        raise ValidationError(name, raw, "not a finite number")
    if value < 0:
        raise ValidationError(name, raw, "must not be negative")
    if name == "bathrooms":
        return math.floor(value * 2) / 2
    if name.startswith("year_built"):
        return int(max(MIN_YEAR_BUILT, min(now.year, value)))
    if isinstance(raw, int):
        return int(value)
    return value


def _any_ilike(label: str, columns: Iterable[str], terms: Iterable[str]) -> AnyOf:
    options = tuple((Constraint(column, Op.ILIKE, term),) for term in terms for column in columns)
    return AnyOf(label=label, options=options)


def _status_group(statuses: Iterable[ListingStatus], now: datetime) -> AnyOf:
    options: List[Tuple[Constraint, ...]] = []
    mapped = sorted(STATUS_COLUMN_VALUES[s] for s in statuses if s in STATUS_COLUMN_VALUES)
    if mapped:
        options.append((Constraint("status", Op.IN, tuple(mapped)),))
    if ListingStatus.NEW in statuses:
        cutoff = now - timedelta(days=NEW_LISTING_DAYS)
        options.append((Constraint("status", Op.EQ, VISIBLE_STATUS), Constraint("created_at", Op.GTE, cutoff)))
    return AnyOf(label="listing_status", options=tuple(options))


def _as_labels(value: Any) -> set:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return set()
    if isinstance(value, str):
        return {part.strip() for part in value.split(";") if part.strip()}
    try:
        return {str(item) for item in value}
    except TypeError:
        return set()


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["AnyOf", "Clause", "Constraint", "Op", "QueryConstraints", "build", "location_terms"]
