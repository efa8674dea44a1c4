"""SQLAlchemy models."""

from storefront_search.models.base import Base
from storefront_search.models.category import Category, Subcategory
from storefront_search.models.product import (
    EMBEDDING_DIMENSIONS,
    Product,
    ProductStatus,
    ProductType,
)

__all__ = [
    # Base
    "Base",
    # Catalog
    "Category",
    "Subcategory",
    "Product",
    "ProductStatus",
    "ProductType",
    "EMBEDDING_DIMENSIONS",
]
