"""Pydantic schemas for the category filter listing."""

from storefront_search.schemas.common import CatalogId, ReadOnlySchema


class SubcategoryResponse(ReadOnlySchema):
    """A subcategory as shown in the search filters."""

    id: CatalogId
    name: str
    description: str
    category_id: CatalogId


class CategoryResponse(ReadOnlySchema):
    """A category with its subcategories."""

    id: CatalogId
    name: str
    description: str
    subcategories: list[SubcategoryResponse] = []
