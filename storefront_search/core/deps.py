"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_search.core.config import settings
from storefront_search.core.database import get_async_session
from storefront_search.services.catalog_store import SqlCatalogStore
from storefront_search.services.embedding_cache import EmbeddingCache
from storefront_search.services.search_service import SearchService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the current request."""
    async for session in get_async_session():
        yield session


# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool() -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            str(settings.redis_url), decode_responses=True
        )
    return _redis_pool


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    pool = _get_redis_pool()
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


def get_embedding_cache(request: Request) -> EmbeddingCache:
    """Return the process-wide embedding cache created at startup."""
    cache: EmbeddingCache = request.app.state.embedding_cache
    return cache


async def get_search_service(
    db: DBSession,
    embedding_cache: Annotated[EmbeddingCache, Depends(get_embedding_cache)],
) -> SearchService:
    """Build a search service over the request's session and the shared cache."""
    return SearchService(SqlCatalogStore(db), embedding_cache)


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]


__all__ = [
    "DBSession",
    "SearchServiceDep",
    "get_db",
    "get_embedding_cache",
    "get_redis",
    "get_search_service",
]
