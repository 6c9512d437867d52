"""Caller-side search state: pagination resets, debouncing and stale-result discard."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from ..models.filters import FilterResult, FilterState, Pagination
from ..utils.logging import get_logger
from .filter_executor import FilterExecutor

LOGGER = get_logger("services.search_session")


class SearchSession:
    """Holds one user's current filters and the last accepted result.

    Every submission takes the next sequence number; a response is accepted
    only if no newer submission was issued while it was in flight.
    """

    def __init__(
        self,
        executor: FilterExecutor,
        state: Optional[FilterState] = None,
        pagination: Optional[Pagination] = None,
        debounce_s: float = 0.3,
    ) -> None:
        self.executor = executor
        self.state = state or FilterState()
        self.pagination = pagination or Pagination(page_size=executor.page_size)
        self.debounce_s = debounce_s
        self.current_result: Optional[FilterResult] = None
        self._latest_seq = 0

    @property
    def latest_seq(self) -> int:
        return self._latest_seq

    def update_filters(self, **changes: Any) -> FilterState:
        self.state = self.state.update(**changes)
        self.pagination = self.pagination.model_copy(update={"page": 1})
        return self.state

    def clear(self) -> FilterState:
        self.state = self.state.cleared()
        self.pagination = Pagination(page_size=self.pagination.page_size)
        return self.state

    def change_page(self, page: int) -> Pagination:
        self.pagination = Pagination.model_validate({**self.pagination.model_dump(), "page": page})
        return self.pagination

    def change_sort(self, sort_by: str, sort_order: str = "desc") -> Pagination:
        self.pagination = Pagination.model_validate(
            {**self.pagination.model_dump(), "sort_by": sort_by, "sort_order": sort_order, "page": 1}
        )
        return self.pagination

    def _next_seq(self) -> int:
        self._latest_seq += 1
        return self._latest_seq

    async def submit(self) -> Optional[FilterResult]:
        """Apply the current filters; returns ``None`` when a newer request superseded this one."""
        seq = self._next_seq()
        return await self._run(seq, self.state, self.pagination)

    async def submit_debounced(self) -> Optional[FilterResult]:
        """Wait for the quiet period and run only if nothing newer was submitted meanwhile."""
        seq = self._next_seq()
        state, pagination = self.state, self.pagination
        await asyncio.sleep(self.debounce_s)
        if seq != self._latest_seq:
            LOGGER.debug("search_debounced seq=%s latest=%s", seq, self._latest_seq)
            return None
        return await self._run(seq, state, pagination)

    async def _run(self, seq: int, state: FilterState, pagination: Pagination) -> Optional[FilterResult]:
        result = await self.executor.apply(state, pagination)
        if seq != self._latest_seq:
            LOGGER.debug("search_result_discarded seq=%s latest=%s", seq, self._latest_seq)
            return None
        self.current_result = result
        return result


__all__ = ["SearchSession"]
