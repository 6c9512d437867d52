"""Listing datastore backed by the hosted Supabase ``property_listings`` table."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from supabase import Client

from ..errors import QueryFailure
from ..models.filters import Pagination
from ..services.query_builder import SEARCHABLE_STATUSES, VISIBLE_STATUS, AnyOf, Constraint, Op, QueryConstraints
from ..utils.logging import get_logger
from .mappers import map_listing_row
from .repository import LISTINGS_TABLE, ListingRepository, PriceSummary, QueryPage, summarize_prices

LOGGER = get_logger("db.supabase_repo")

SUGGESTION_COLUMNS = "property_type, price, features, city, state, bedrooms, bathrooms"
PRICE_PAGE_SIZE = 1000


class SupabaseListingRepository(ListingRepository):
    mode = "supabase"

    def __init__(self, client: Client, table: str = LISTINGS_TABLE) -> None:
        self.client = client
        self.table = table

    def query(self, constraints: QueryConstraints, pagination: Pagination) -> QueryPage:
        start = pagination.offset
        end = start + pagination.page_size - 1
        query = self.client.table(self.table).select("*", count="exact")
        query = apply_constraints(query, constraints)
        query = query.order(pagination.sort_by, desc=pagination.sort_order == "desc").range(start, end)
        response = self._execute(query, "query")
        rows = [map_listing_row(row) for row in (response.data or [])]
        return QueryPage(rows=rows, total=int(response.count or 0))

    def price_summary(self, constraints: QueryConstraints) -> PriceSummary:
        prices: List[Any] = []
        start = 0
        # PostgREST caps each response at its max-rows setting.
        while True:
            query = apply_constraints(self.client.table(self.table).select("price"), constraints)
            query = query.range(start, start + PRICE_PAGE_SIZE - 1)
            rows = self._execute(query, "price_summary").data or []
            prices.extend(row.get("price") for row in rows)
            if len(rows) < PRICE_PAGE_SIZE:
                break
            start += PRICE_PAGE_SIZE
        return summarize_prices(prices)

    def count_visible(self) -> int:
        query = self.client.table(self.table).select("id", count="exact", head=True)
        query = query.in_("status", list(SEARCHABLE_STATUSES))
        return int(self._execute(query, "count_visible").count or 0)

    def suggestion_rows(self) -> List[Dict]:
        query = self.client.table(self.table).select(SUGGESTION_COLUMNS).eq("status", VISIBLE_STATUS)
        return [map_listing_row(row) for row in (self._execute(query, "suggestions").data or [])]

    def _execute(self, query, operation: str):
        try:
            return query.execute()
        except Exception as exc:
            LOGGER.error("supabase_query_failed operation=%s error=%s", operation, exc)
            raise QueryFailure(f"Database error: {exc}") from exc


# ---------------------------------------------------------------------------
# Constraint translation
# ---------------------------------------------------------------------------


def apply_constraints(query, constraints: QueryConstraints):
    for clause in constraints.clauses:
        if isinstance(clause, AnyOf):
            query = query.or_(or_filter(clause))
        else:
            query = _apply_one(query, clause)
    return query


def _apply_one(query, c: Constraint):
    value = _value(c.value)
    if c.op is Op.EQ:
        return query.eq(c.column, value)
    if c.op is Op.GTE:
        return query.gte(c.column, value)
    if c.op is Op.LTE:
        return query.lte(c.column, value)
    if c.op is Op.IN:
        return query.in_(c.column, list(c.value))
    if c.op is Op.CONTAINS_ALL:
        return query.contains(c.column, list(c.value))
    if c.op is Op.OVERLAPS:
        return query.overlaps(c.column, list(c.value))
    if c.op is Op.ILIKE:
        return query.ilike(c.column, f"%{c.value}%")
    return query.ilike(c.column, str(c.value))


def or_filter(group: AnyOf) -> str:
    """Render a group in PostgREST logical-tree syntax for ``or_``."""

    parts = []
    for option in group.options:
        rendered = [_render(c) for c in option]
        parts.append(rendered[0] if len(rendered) == 1 else f"and({','.join(rendered)})")
    return ",".join(parts)


def _render(c: Constraint) -> str:
    if c.op is Op.IN:
        return f"{c.column}.in.({','.join(_quote(v) for v in c.value)})"
    if c.op is Op.CONTAINS_ALL:
        return f"{c.column}.cs.{{{','.join(_quote(v) for v in c.value)}}}"
    if c.op is Op.OVERLAPS:
        return f"{c.column}.ov.{{{','.join(_quote(v) for v in c.value)}}}"
    if c.op is Op.ILIKE:
        return f"{c.column}.ilike.{_quote(f'*{c.value}*')}"
    if c.op is Op.IEQ:
        return f"{c.column}.ilike.{_quote(c.value)}"
    return f"{c.column}.{c.op.value}.{_quote(_value(c.value))}"


def _value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _quote(value: Any) -> str:
    text = str(value)
    if any(ch in text for ch in ',.:()" '):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


__all__ = ["SupabaseListingRepository", "apply_constraints", "or_filter"]
