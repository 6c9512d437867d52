"""Error taxonomy shared by the filter engine and the insights pipeline."""

from __future__ import annotations


class ListingSearchError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(ListingSearchError):
    """A filter value that cannot be turned into a constraint."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        super().__init__(f"{field}={value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason


class QueryFailure(ListingSearchError):
    """The listing datastore rejected or failed a query."""


class DuplicateNameError(ListingSearchError):
    """A saved filter with the same name already exists for the owner."""

    def __init__(self, owner_id: str, name: str) -> None:
        super().__init__(f"Saved filter {name!r} already exists for owner {owner_id}")
        self.owner_id = owner_id
        self.name = name


class PlacesProviderFailure(ListingSearchError):
    """The points-of-interest provider failed for a request."""


class GeocodeFailure(PlacesProviderFailure):
    """An address could not be resolved to coordinates."""

    def __init__(self, address: str, reason: str = "Address not found") -> None:
        super().__init__(f"{reason}: {address}")
        self.address = address
        self.reason = reason


__all__ = [
    "ListingSearchError",
    "ValidationError",
    "QueryFailure",
    "DuplicateNameError",
    "PlacesProviderFailure",
    "GeocodeFailure",
]
