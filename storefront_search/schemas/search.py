"""Pydantic schemas for product search and filtering."""

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from storefront_search.schemas.common import CatalogId, ReadOnlySchema

SortDirection = Literal["asc", "desc"]


class SearchQuery(BaseModel):
    """A validated storefront search request.

    Immutable; the same query always yields the same result set and ordering
    against the same catalog state.
    """

    model_config = ConfigDict(frozen=True)

    query: str | None = Field(None, max_length=500, description="Free-text search query")
    category_id: CatalogId | None = Field(None, description="Restrict to a category")
    subcategory_id: CatalogId | None = Field(None, description="Restrict to a subcategory")
    min_price: float | None = Field(None, ge=0, description="Minimum price (inclusive)")
    max_price: float | None = Field(None, ge=0, description="Maximum price (inclusive)")
    rating: float | None = Field(None, ge=0, le=5, description="Minimum rating (inclusive)")
    sort: str | None = Field(None, description='Sort as "field.direction", e.g. "price.asc"')
    page: int = Field(1, ge=1, description="1-based page number")

    @property
    def is_semantic(self) -> bool:
        """Whether the query carries free text to rank by similarity."""
        return bool(self.query and self.query.strip())


class CatalogFilters(BaseModel):
    """Structured predicate shared by the page and count reads."""

    model_config = ConfigDict(frozen=True)

    category_id: str | None = None
    subcategory_id: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_rating: float | None = None

    @classmethod
    def from_query(cls, query: SearchQuery) -> "CatalogFilters":
        return cls(
            category_id=query.category_id,
            subcategory_id=query.subcategory_id,
            min_price=query.min_price,
            max_price=query.max_price,
            min_rating=query.rating,
        )


class SortSpec(BaseModel):
    """Primary ordering for a result page. Ties are always broken by id."""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = "desc"


class CatalogEntry(ReadOnlySchema):
    """Read-only projection of a product returned by search."""

    id: str
    title: str
    type: str
    images: list[dict[str, Any]] = []
    price: float | None = None
    sale_price: float | None = None
    sale_duration: dict[str, Any] | None = None
    stock: int | None = None
    rating: float = 0.0
    short_description: str
    long_description: dict[str, Any] | None = None
    similarity: float | None = Field(None, description="Set in semantic mode only")


class SearchResultPage(BaseModel):
    """One page of search results with the filtered total."""

    data: list[CatalogEntry]
    total: int
    page_count: int

    @classmethod
    def build(cls, data: list[CatalogEntry], total: int, page_size: int) -> "SearchResultPage":
        return cls(data=data, total=total, page_count=math.ceil(total / page_size))

    @classmethod
    def empty(cls) -> "SearchResultPage":
        return cls(data=[], total=0, page_count=0)


class SearchResponse(SearchResultPage):
    """Search result page as returned by the HTTP API."""

    page: int
    page_size: int
