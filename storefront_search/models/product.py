"""Product model for the storefront catalog."""

import enum
from typing import TYPE_CHECKING, Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront_search.models.base import Base

if TYPE_CHECKING:
    from storefront_search.models.category import Category, Subcategory

# Dimensionality of the stored product embeddings
EMBEDDING_DIMENSIONS = 768


class ProductType(str, enum.Enum):
    """Simple products have one price/stock; variable ones have combinations."""

    SIMPLE = "simple"
    VARIABLE = "variable"


class ProductStatus(str, enum.Enum):
    """Publication status. Only active products are searchable."""

    DRAFT = "draft"
    ARCHIVED = "archived"
    ACTIVE = "active"


class Product(Base):
    """Catalog product.

    Rows are written by the admin dashboard; this service only reads them,
    apart from the embedding backfill worker filling in ``embedding``.
    """

    __tablename__ = "products"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        "product_type",
        String(20),
        default=ProductType.SIMPLE.value,
        nullable=False,
    )
    short_description: Mapped[str] = mapped_column(Text, nullable=False)
    # Rich text document from the editor
    long_description: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Pricing and stock (null for variable products, priced per combination)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sale_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    sale_duration: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    rating: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        "product_status",
        String(20),
        default=ProductStatus.DRAFT.value,
        nullable=False,
    )
    label: Mapped[str] = mapped_column(
        "product_label",
        String(20),
        default="none",
        nullable=False,
    )

    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String),
        default=list,
        nullable=False,
    )
    images: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        default=list,
        nullable=False,
    )

    # Embedding of "{title}. {short_description}", null until the backfill runs
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSIONS),
        nullable=True,
    )

    category_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    subcategory_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("subcategories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Relationships
    category: Mapped["Category"] = relationship("Category", back_populates="products")
    subcategory: Mapped["Subcategory"] = relationship(
        "Subcategory", back_populates="products"
    )

    __table_args__ = (
        Index(
            "products_embedding_idx",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    def __repr__(self) -> str:
        return f"<Product {self.title} ({self.status})>"
