"""Category and subcategory models used by the search filters."""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront_search.models.base import Base

if TYPE_CHECKING:
    from storefront_search.models.product import Product


class Category(Base):
    """Top-level product category."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    subcategories: Mapped[list["Subcategory"]] = relationship(
        "Subcategory",
        back_populates="category",
        order_by="Subcategory.name",
    )
    products: Mapped[list["Product"]] = relationship("Product", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Subcategory(Base):
    """Subcategory, unique by name within its category."""

    __tablename__ = "subcategories"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    category: Mapped[Category] = relationship("Category", back_populates="subcategories")
    products: Mapped[list["Product"]] = relationship("Product", back_populates="subcategory")

    __table_args__ = (
        Index("ix_subcategories_category_name", "category_id", "name", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Subcategory {self.name}>"
