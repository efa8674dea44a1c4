"""Pydantic schemas for request/response validation."""

from storefront_search.schemas.category import CategoryResponse, SubcategoryResponse
from storefront_search.schemas.common import CatalogId, ReadOnlySchema
from storefront_search.schemas.search import (
    CatalogEntry,
    CatalogFilters,
    SearchQuery,
    SearchResponse,
    SearchResultPage,
    SortSpec,
)

__all__ = [
    "CatalogEntry",
    "CatalogFilters",
    "CatalogId",
    "CategoryResponse",
    "ReadOnlySchema",
    "SearchQuery",
    "SearchResponse",
    "SearchResultPage",
    "SortSpec",
    "SubcategoryResponse",
]
