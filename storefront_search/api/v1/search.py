"""Product search API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from storefront_search.core.deps import SearchServiceDep
from storefront_search.core.rate_limit import limiter, search_rate_limit
from storefront_search.schemas.search import SearchQuery, SearchResponse

router = APIRouter()


@router.get("/search", response_model=SearchResponse)
@limiter.limit(search_rate_limit)
async def search_products(
    request: Request,  # noqa: ARG001  # required by slowapi
    params: Annotated[SearchQuery, Query()],
    service: SearchServiceDep,
) -> SearchResponse:
    """Search active products with optional free text, filters and sort.

    Without ``query`` results are ordered by rating (or ``sort``). With a
    query they are ranked by semantic similarity to it. Backend failures
    yield an empty page rather than an error.
    """
    page = await service.search(params)

    return SearchResponse(
        data=page.data,
        total=page.total,
        page_count=page.page_count,
        page=params.page,
        page_size=service.config.page_size,
    )
