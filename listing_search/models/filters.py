"""Pydantic models for filter state, filter results and saved filters."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..utils.coerce import to_bool, to_float, to_int, to_labels, to_opt_str


class PropertyType(str, Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    TOWNHOUSE = "townhouse"
    CONDO = "condo"
    UNIT = "unit"
    VILLA = "villa"
    LAND = "land"
    COMMERCIAL = "commercial"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"
    NEW = "new"


class AmenityCategory(str, Enum):
    SCHOOLS = "schools"
    HOSPITALS = "hospitals"
    SHOPPING = "shopping"
    RESTAURANTS = "restaurants"
    PARKS = "parks"
    PUBLIC_TRANSPORT = "publicTransport"
    GYMS = "gyms"
    AIRPORTS = "airports"
    ENTERTAINMENT = "entertainment"


_FLOAT_FIELDS = (
    "price_min",
    "price_max",
    "bathrooms",
    "lot_size_min",
    "lot_size_max",
    "hoa_min",
    "hoa_max",
)
_INT_FIELDS = (
    "bedrooms",
    "square_footage_min",
    "square_footage_max",
    "year_built_min",
    "year_built_max",
    "garage_spaces",
    "days_on_market",
)
FLAG_FIELDS = ("open_house", "virtual_tour", "price_reduced", "foreclosure", "short_sale")

# (label, min field, max field) pairs checked by ``validation_errors``.
_RANGE_PAIRS = (
    ("price", "price_min", "price_max"),
    ("square footage", "square_footage_min", "square_footage_max"),
    ("year built", "year_built_min", "year_built_max"),
    ("lot size", "lot_size_min", "lot_size_max"),
    ("HOA fee", "hoa_min", "hoa_max"),
)


class FilterState(BaseModel):
    """Every user-selectable search criterion at a point in time.

    All fields are optional. Instances are frozen; use :meth:`update` to
    derive a new state.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore")

    search_term: Optional[str] = None
    location: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    property_type: Optional[PropertyType] = None
    features: FrozenSet[str] = frozenset()
    square_footage_min: Optional[int] = None
    square_footage_max: Optional[int] = None
    year_built_min: Optional[int] = None
    year_built_max: Optional[int] = None
    lot_size_min: Optional[float] = None
    lot_size_max: Optional[float] = None
    garage_spaces: Optional[int] = None
    hoa_min: Optional[float] = None
    hoa_max: Optional[float] = None
    nearby_amenities: Dict[AmenityCategory, bool] = Field(default_factory=dict)
    listing_status: FrozenSet[ListingStatus] = frozenset()
    days_on_market: Optional[int] = None
    open_house: Optional[bool] = None
    virtual_tour: Optional[bool] = None
    price_reduced: Optional[bool] = None
    foreclosure: Optional[bool] = None
    short_sale: Optional[bool] = None
    accessibility_features: FrozenSet[str] = frozenset()

    @field_validator("search_term", "location", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        return to_opt_str(value)

    @field_validator(*_FLOAT_FIELDS, mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> Optional[float]:
        return to_float(value)

    @field_validator(*_INT_FIELDS, mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> Optional[int]:
        return to_int(value)

    @field_validator("property_type", mode="before")
    @classmethod
    def _coerce_property_type(cls, value: Any) -> Optional[str]:
        text = to_opt_str(getattr(value, "value", value))
        if text is None:
            return None
        try:
            return PropertyType(text.strip().lower()).value
        except ValueError:
            return None

    @field_validator("features", "accessibility_features", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> FrozenSet[str]:
        return to_labels(value)

    @field_validator("listing_status", mode="before")
    @classmethod
    def _coerce_statuses(cls, value: Any) -> FrozenSet[str]:
        known = {status.value for status in ListingStatus}
        return frozenset(label.lower() for label in to_labels(value) if label.lower() in known)

    @field_validator("nearby_amenities", mode="before")
    @classmethod
    def _coerce_amenities(cls, value: Any) -> Dict[str, bool]:
        if not value:
            return {}
        if not isinstance(value, dict):
            value = {label: True for label in to_labels(value)}
        known = {category.value for category in AmenityCategory}
        # An unchecked amenity narrows nothing, so only true flags are kept.
        return {
            str(getattr(key, "value", key)): True
            for key, flag in value.items()
            if to_bool(flag) and str(getattr(key, "value", key)) in known
        }

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> Optional[bool]:
        return to_bool(value)

    # ------------------------------------------------------------------
    def populated_fields(self) -> List[str]:
        populated: List[str] = []
        for name in type(self).model_fields:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, (frozenset, dict)) and not value:
                continue
            populated.append(name)
        return populated

    def is_empty(self) -> bool:
        return not self.populated_fields()

    def update(self, **changes: Any) -> "FilterState":
        """Return a new state with ``changes`` applied and re-validated."""
        payload = self.model_dump(mode="json")
        payload.update(changes)
        return type(self).model_validate(payload)

    def cleared(self) -> "FilterState":
        return type(self)()

    def active_amenities(self) -> List[str]:
        return sorted(key.value for key, flag in self.nearby_amenities.items() if flag)

    def validation_errors(self) -> List[str]:
        """Describe inconsistent ranges and negative counts for display."""
        errors: List[str] = []
        for label, low_name, high_name in _RANGE_PAIRS:
            low, high = getattr(self, low_name), getattr(self, high_name)
            if low is not None and high is not None and low > high:
                errors.append(f"Minimum {label} cannot be greater than maximum {label}")
        for name in ("bedrooms", "bathrooms", "garage_spaces", "days_on_market"):
            value = getattr(self, name)
            if value is not None and value < 0:
                errors.append(f"{name.replace('_', ' ').capitalize()} cannot be negative")
        return errors


SortField = Literal["price", "created_at", "square_feet", "bedrooms", "bathrooms"]


class Pagination(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=200)
    sort_by: SortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PriceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float = 0.0
    max: float = 0.0


class FilterStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    matching_properties: int = 0
    total_properties: int = 0
    average_price: float = 0.0
    price_range: PriceRange = Field(default_factory=PriceRange)


class FilterError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    message: str


class FilterResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    properties: List[Dict[str, Any]] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    total_pages: int = 0
    has_more: bool = False
    applied_filters: FilterState = Field(default_factory=FilterState)
    filter_stats: FilterStats = Field(default_factory=FilterStats)
    error: Optional[FilterError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def empty(
        cls, state: FilterState, page: int = 1, error: Optional[FilterError] = None
    ) -> "FilterResult":
        return cls(page=page, applied_filters=state, error=error)


class FilterSuggestions(BaseModel):
    property_types: List[str] = Field(default_factory=list)
    price_range: PriceRange = Field(default_factory=lambda: PriceRange(min=0.0, max=1_000_000.0))
    bedroom_options: List[int] = Field(default_factory=list)
    bathroom_options: List[float] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    name: str
    filters: FilterState
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


__all__ = [
    "AmenityCategory",
    "FilterError",
    "FilterResult",
    "FilterState",
    "FilterStats",
    "FilterSuggestions",
    "FLAG_FIELDS",
    "ListingStatus",
    "Pagination",
    "PriceRange",
    "PropertyType",
    "SavedFilter",
]
