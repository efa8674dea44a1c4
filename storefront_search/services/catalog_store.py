"""Catalog reads for product search.

The search planner only depends on the ``CatalogStore`` protocol. The
PostgreSQL implementation pushes filtering, similarity scoring, ordering and
pagination into a single SQL statement per read, using pgvector's cosine
distance operator.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import ColumnElement, Select, func, nulls_last, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_search.models.product import Product, ProductStatus
from storefront_search.schemas.search import CatalogEntry, CatalogFilters, SortSpec

SIMILARITY_FIELD = "similarity"

# Columns a caller may sort by, keyed by the public field name
SORTABLE_FIELDS = frozenset(
    {"rating", "price", "sale_price", "title", "stock", "created_at", "updated_at"}
)

_ENTRY_FIELDS = (
    "id",
    "title",
    "type",
    "images",
    "price",
    "sale_price",
    "sale_duration",
    "stock",
    "rating",
    "short_description",
    "long_description",
)


@dataclass(frozen=True)
class SimilarityTerm:
    """Query embedding plus the similarity a row must exceed to match."""

    embedding: list[float]
    threshold: float


class CatalogStore(Protocol):
    """Read access to the product catalog."""

    async def fetch_page(
        self,
        filters: CatalogFilters,
        order: SortSpec,
        *,
        limit: int,
        offset: int,
        similarity: SimilarityTerm | None = None,
    ) -> list[CatalogEntry]: ...

    async def count(
        self,
        filters: CatalogFilters,
        *,
        similarity: SimilarityTerm | None = None,
    ) -> int: ...


def similarity_expression(term: SimilarityTerm) -> ColumnElement[float]:
    """1 - cosine distance between the product embedding and the query."""
    return 1 - Product.embedding.cosine_distance(term.embedding)


class SqlCatalogStore:
    """CatalogStore backed by the products table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def fetch_page(
        self,
        filters: CatalogFilters,
        order: SortSpec,
        *,
        limit: int,
        offset: int,
        similarity: SimilarityTerm | None = None,
    ) -> list[CatalogEntry]:
        stmt = self.build_page_statement(
            filters, order, limit=limit, offset=offset, similarity=similarity
        )
        result = await self.db.execute(stmt)
        return [CatalogEntry.model_validate(dict(row)) for row in result.mappings().all()]

    async def count(
        self,
        filters: CatalogFilters,
        *,
        similarity: SimilarityTerm | None = None,
    ) -> int:
        stmt = self.build_count_statement(filters, similarity=similarity)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    def build_page_statement(
        self,
        filters: CatalogFilters,
        order: SortSpec,
        *,
        limit: int,
        offset: int,
        similarity: SimilarityTerm | None = None,
    ) -> Select[Any]:
        """Build the filtered, ordered, paginated select for one page."""
        columns: list[Any] = [getattr(Product, name).label(name) for name in _ENTRY_FIELDS]
        similarity_expr = None
        if similarity is not None:
            similarity_expr = similarity_expression(similarity)
            columns.append(similarity_expr.label(SIMILARITY_FIELD))

        stmt = select(*columns).where(*self._where(filters, similarity, similarity_expr))

        primary = self._sort_column(order, similarity_expr)
        primary = primary.asc() if order.direction == "asc" else primary.desc()

        return (
            stmt.order_by(nulls_last(primary), Product.id.asc())
            .limit(limit)
            .offset(offset)
        )

    def build_count_statement(
        self,
        filters: CatalogFilters,
        *,
        similarity: SimilarityTerm | None = None,
    ) -> Select[Any]:
        """Build the count of all rows matching the same predicate."""
        similarity_expr = similarity_expression(similarity) if similarity is not None else None
        return (
            select(func.count())
            .select_from(Product)
            .where(*self._where(filters, similarity, similarity_expr))
        )

    @staticmethod
    def _where(
        filters: CatalogFilters,
        similarity: SimilarityTerm | None,
        similarity_expr: ColumnElement[float] | None,
    ) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = [Product.status == ProductStatus.ACTIVE.value]

        if filters.category_id is not None:
            clauses.append(Product.category_id == filters.category_id)
        if filters.subcategory_id is not None:
            clauses.append(Product.subcategory_id == filters.subcategory_id)
        if filters.min_price is not None:
            clauses.append(Product.price >= filters.min_price)
        if filters.max_price is not None:
            clauses.append(Product.price <= filters.max_price)
        if filters.min_rating is not None:
            clauses.append(Product.rating >= filters.min_rating)

        if similarity is not None and similarity_expr is not None:
            clauses.append(Product.embedding.isnot(None))
            clauses.append(similarity_expr > similarity.threshold)

        return clauses

    @staticmethod
    def _sort_column(
        order: SortSpec,
        similarity_expr: ColumnElement[float] | None,
    ) -> ColumnElement[Any]:
        if order.field == SIMILARITY_FIELD:
            if similarity_expr is None:
                raise ValueError("Cannot sort by similarity without a query embedding")
            return similarity_expr
        if order.field not in SORTABLE_FIELDS:
            raise ValueError(f"Unsortable field: {order.field}")
        return getattr(Product, order.field)
