from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, Field

from .context import AppContext, build_context
from .errors import DuplicateNameError, GeocodeFailure, QueryFailure
from .models.filters import FilterResult, FilterState, FilterSuggestions, Pagination, SavedFilter
from .models.places import PropertyInsights
from .services import url_state
from .utils.logging import get_logger

LOGGER = get_logger("api")


class SearchRequest(BaseModel):
    filters: FilterState = Field(default_factory=FilterState)
    pagination: Optional[Pagination] = None


class SaveFilterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    filters: FilterState
    overwrite: bool = False


class FilterUrlResponse(BaseModel):
    query: str
    validation_errors: List[str]


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    ctx = context or build_context()
    app = FastAPI(title="Listing Search")
    router = APIRouter(prefix="/api")

    @router.get("/health")
    def health():
        return {"status": "ok", "db_mode": ctx.repository.mode}

    @router.post("/listings/search", response_model=FilterResult)
    async def search(req: SearchRequest):
        pagination = req.pagination or Pagination(page_size=ctx.settings.page_size)
        return await ctx.executor.apply(req.filters, pagination)

    @router.get("/listings/search", response_model=FilterResult)
    async def search_from_url(request: Request):
        query = str(request.url.query)
        state = url_state.decode(query)
        pagination = url_state.decode_pagination(query, page_size=ctx.settings.page_size)
        return await ctx.executor.apply(state, pagination)

    @router.get("/filters/suggestions", response_model=FilterSuggestions)
    async def suggestions():
        return await ctx.executor.suggestions()

    @router.post("/filters/url", response_model=FilterUrlResponse)
    def filter_url(req: SearchRequest):
        return FilterUrlResponse(
            query=url_state.encode_with_pagination(req.filters, req.pagination),
            validation_errors=req.filters.validation_errors(),
        )

    @router.get("/users/{owner_id}/saved-filters", response_model=List[SavedFilter])
    async def list_saved(owner_id: str):
        return await _records_call(ctx.saved_filters.list(owner_id))

    @router.post("/users/{owner_id}/saved-filters", response_model=SavedFilter, status_code=201)
    async def save_filter(owner_id: str, req: SaveFilterRequest):
        try:
            return await _records_call(
                ctx.saved_filters.save(owner_id, req.name, req.filters, overwrite=req.overwrite)
            )
        except DuplicateNameError as exc:
            raise HTTPException(409, detail=str(exc))
        except ValueError as exc:
            raise HTTPException(400, detail=str(exc))

    @router.delete("/saved-filters/{filter_id}", status_code=204)
    async def delete_saved(filter_id: str):
        await _records_call(ctx.saved_filters.delete(filter_id))

    @router.get("/insights", response_model=PropertyInsights)
    async def insights(address: str = Query(..., min_length=1), refresh: bool = False):
        try:
            return await _records_call(ctx.insights.insights(address, refresh=refresh))
        except GeocodeFailure as exc:
            raise HTTPException(422, detail=str(exc))

    app.include_router(router)
    app.state.context = ctx
    return app


async def _records_call(awaitable):
    try:
        return await awaitable
    except QueryFailure as exc:
        LOGGER.error("persistence_failed error=%s", exc)
        raise HTTPException(503, detail=str(exc))


app = create_app()

__all__ = ["app", "create_app"]
