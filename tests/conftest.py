"""Pytest configuration and fixtures for the storefront search test suite.

Provides:
- An in-memory CatalogStore fake and a recording embedding provider, so the
  search core can be tested without PostgreSQL or OpenAI
- Test database (storefront_test, pgvector) with table truncation per test;
  database-backed tests are skipped when it is unreachable
- Disabled rate limiting
- Model factory fixtures for Category, Subcategory and Product
- Async HTTP clients with dependency overrides
"""

import math
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from storefront_search.core.config import settings
from storefront_search.core.database import get_async_session
from storefront_search.core.deps import get_db, get_search_service
from storefront_search.core.rate_limit import limiter
from storefront_search.main import app
from storefront_search.models.base import Base, generate_id
from storefront_search.models.category import Category, Subcategory
from storefront_search.models.product import EMBEDDING_DIMENSIONS, Product
from storefront_search.schemas.search import CatalogEntry, CatalogFilters, SortSpec
from storefront_search.services.catalog_store import SIMILARITY_FIELD, SimilarityTerm
from storefront_search.services.embedding_cache import EmbeddingCache
from storefront_search.services.search_service import SearchConfig, SearchService

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_PAGE_SIZE = 3
QUERY_VECTOR = [1.0, 0.0, 0.0]

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False


def vector_with_similarity(similarity: float) -> list[float]:
    """A unit vector whose cosine similarity to QUERY_VECTOR is ``similarity``."""
    return [similarity, math.sqrt(1 - similarity**2), 0.0]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm


# ---------------------------------------------------------------------------
# In-memory catalog store
# ---------------------------------------------------------------------------


@dataclass
class StoredProduct:
    """A catalog row as held by the in-memory store."""

    title: str
    rating: float = 0.0
    price: float | None = 10.0
    status: str = "active"
    category_id: str | None = None
    subcategory_id: str | None = None
    embedding: list[float] | None = None
    stock: int | None = 10
    sale_price: float | None = None
    short_description: str = "A product"
    id: str = field(default_factory=generate_id)

    def to_entry(self, similarity: float | None) -> CatalogEntry:
        return CatalogEntry(
            id=self.id,
            title=self.title,
            type="simple",
            price=self.price,
            sale_price=self.sale_price,
            stock=self.stock,
            rating=self.rating,
            short_description=self.short_description,
            similarity=similarity,
        )


class InMemoryCatalogStore:
    """CatalogStore fake applying the same predicate and ordering rules in Python."""

    def __init__(self) -> None:
        self.products: list[StoredProduct] = []
        self.fetch_calls: list[dict[str, Any]] = []
        self.count_calls: list[dict[str, Any]] = []
        self.error: Exception | None = None

    def add(self, title: str, **kwargs: Any) -> StoredProduct:
        product = StoredProduct(title=title, **kwargs)
        self.products.append(product)
        return product

    def _matching(
        self,
        filters: CatalogFilters,
        similarity: SimilarityTerm | None,
    ) -> list[tuple[StoredProduct, float | None]]:
        rows: list[tuple[StoredProduct, float | None]] = []
        for p in self.products:
            if p.status != "active":
                continue
            if filters.category_id is not None and p.category_id != filters.category_id:
                continue
            if filters.subcategory_id is not None and p.subcategory_id != filters.subcategory_id:
                continue
            if filters.min_price is not None and (p.price is None or p.price < filters.min_price):
                continue
            if filters.max_price is not None and (p.price is None or p.price > filters.max_price):
                continue
            if filters.min_rating is not None and p.rating < filters.min_rating:
                continue

            score = None
            if similarity is not None:
                if p.embedding is None:
                    continue
                score = cosine_similarity(p.embedding, similarity.embedding)
                if not score > similarity.threshold:
                    continue
            rows.append((p, score))
        return rows

    async def fetch_page(
        self,
        filters: CatalogFilters,
        order: SortSpec,
        *,
        limit: int,
        offset: int,
        similarity: SimilarityTerm | None = None,
    ) -> list[CatalogEntry]:
        self.fetch_calls.append(
            {"filters": filters, "order": order, "limit": limit, "offset": offset, "similarity": similarity}
        )
        if self.error is not None:
            raise self.error

        rows = sorted(self._matching(filters, similarity), key=lambda r: r[0].id)

        def key(row: tuple[StoredProduct, float | None]) -> Any:
            return row[1] if order.field == SIMILARITY_FIELD else getattr(row[0], order.field)

        present = [r for r in rows if key(r) is not None]
        missing = [r for r in rows if key(r) is None]
        # Stable sort keeps id ascending among equal keys
        present.sort(key=key, reverse=order.direction == "desc")
        ordered = present + missing

        return [p.to_entry(score) for p, score in ordered[offset : offset + limit]]

    async def count(
        self,
        filters: CatalogFilters,
        *,
        similarity: SimilarityTerm | None = None,
    ) -> int:
        self.count_calls.append({"filters": filters, "similarity": similarity})
        if self.error is not None:
            raise self.error
        return len(self._matching(filters, similarity))


class RecordingEmbeddingProvider:
    """Embedding provider fake that records every call."""

    def __init__(self, vector: list[float] | None = None) -> None:
        self.vector = vector or QUERY_VECTOR
        self.calls: list[str] = []
        self.error: Exception | None = None

    async def generate_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


# ---------------------------------------------------------------------------
# Search core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog() -> InMemoryCatalogStore:
    """An empty in-memory catalog."""
    return InMemoryCatalogStore()


@pytest.fixture
def provider() -> RecordingEmbeddingProvider:
    """A provider returning QUERY_VECTOR for every text."""
    return RecordingEmbeddingProvider()


@pytest.fixture
def embedding_cache(provider: RecordingEmbeddingProvider) -> EmbeddingCache:
    """A roomy cache in front of the recording provider."""
    return EmbeddingCache(provider, max_entries=100, max_bytes=1024 * 1024, ttl_seconds=3600)


@pytest.fixture
def search_config() -> SearchConfig:
    """Small pages so pagination is easy to exercise."""
    return SearchConfig(
        page_size=TEST_PAGE_SIZE,
        page_threshold=0.63,
        count_threshold=0.7,
        embedding_timeout_seconds=1.0,
    )


@pytest.fixture
def search_service(
    catalog: InMemoryCatalogStore,
    embedding_cache: EmbeddingCache,
    search_config: SearchConfig,
) -> SearchService:
    """Search service over the in-memory catalog."""
    return SearchService(catalog, embedding_cache, search_config)


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(search_service: SearchService) -> AsyncGenerator[AsyncClient, None]:
    """Async test client whose search service runs over the in-memory catalog."""

    async def _override_search_service() -> SearchService:
        return search_service

    app.dependency_overrides[get_search_service] = _override_search_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Test database
# ---------------------------------------------------------------------------

_base_url = str(settings.database_url)
_TEST_DATABASE_URL = (
    _base_url if _base_url.endswith("/storefront_test") else _base_url.replace("/storefront", "/storefront_test")
)

# Tables to truncate after each test (reverse dependency order)
_TABLES_TO_TRUNCATE = ["products", "subcategories", "categories"]


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine bound to storefront_test with the schema created.

    Uses NullPool so no connection outlives the test's event loop. Skips the
    test when the database (or the vector extension) is not available.
    """
    engine = create_async_engine(
        _TEST_DATABASE_URL,
        poolclass=NullPool,
        connect_args={"timeout": 5},
    )
    try:
        async with engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:  # noqa: BLE001
        await engine.dispose()
        pytest.skip(f"Test database unavailable: {exc}")

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE {', '.join(_TABLES_TO_TRUNCATE)} CASCADE"))
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for test setup and direct service calls."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def db_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the database dependency pointed at storefront_test."""

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_db] = _override_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def category_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Category instances."""

    async def _create(*, name: str = "Shoes", description: str = "All shoes") -> Category:
        category = Category(name=name, description=description)
        db_session.add(category)
        await db_session.commit()
        await db_session.refresh(category)
        return category

    return _create


@pytest.fixture
def subcategory_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Subcategory instances."""

    async def _create(
        *,
        category_id: str,
        name: str = "Running",
        description: str = "Running shoes",
    ) -> Subcategory:
        subcategory = Subcategory(category_id=category_id, name=name, description=description)
        db_session.add(subcategory)
        await db_session.commit()
        await db_session.refresh(subcategory)
        return subcategory

    return _create


@pytest_asyncio.fixture
async def category(category_factory: Callable[..., Any]) -> Category:
    """A default category."""
    return await category_factory()


@pytest_asyncio.fixture
async def subcategory(subcategory_factory: Callable[..., Any], category: Category) -> Subcategory:
    """A default subcategory of the default category."""
    return await subcategory_factory(category_id=category.id)


@pytest.fixture
def mock_embedding() -> list[float]:
    """A full-dimension embedding used both for products and queries."""
    return [0.1] * EMBEDDING_DIMENSIONS


@pytest.fixture
def product_factory(db_session: AsyncSession, subcategory: Subcategory) -> Callable[..., Any]:
    """Factory that creates Product instances in the default subcategory."""

    async def _create(
        *,
        title: str = "Test Product",
        short_description: str = "A test product description",
        price: float | None = 25.0,
        rating: float = 0.0,
        status: str = "active",
        stock: int | None = 10,
        category_id: str | None = None,
        subcategory_id: str | None = None,
        embedding: list[float] | None = None,
    ) -> Product:
        product = Product(
            title=title,
            short_description=short_description,
            price=price,
            rating=rating,
            status=status,
            stock=stock,
            category_id=category_id or subcategory.category_id,
            subcategory_id=subcategory_id or subcategory.id,
            tags=[],
            images=[],
            embedding=embedding,
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _create
