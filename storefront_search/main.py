"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from storefront_search.api.v1.router import api_router
from storefront_search.core.config import settings
from storefront_search.core.database import engine
from storefront_search.core.logging_config import (
    request_id_var,
    resolve_request_id,
    setup_logging,
)
from storefront_search.core.rate_limit import limiter
from storefront_search.services.embedding_cache import EmbeddingCache
from storefront_search.services.embedding_service import get_embedding_service

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def create_embedding_cache() -> EmbeddingCache:
    """Build the process-wide embedding cache from settings."""
    return EmbeddingCache(
        get_embedding_service(),
        max_entries=settings.embedding_cache_max_entries,
        max_bytes=settings.embedding_cache_max_bytes,
        ttl_seconds=settings.embedding_cache_ttl_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Set up logging and the embedding cache; release the DB pool on exit."""
    setup_logging(debug=settings.debug)
    logger.info(
        "Starting %s v%s (%s)",
        settings.project_name,
        settings.version,
        settings.environment,
    )

    cache = create_embedding_cache()
    app.state.embedding_cache = cache
    logger.info(
        "Embedding cache ready: model=%s max_entries=%d max_bytes=%d ttl=%ds",
        settings.embedding_model,
        settings.embedding_cache_max_entries,
        settings.embedding_cache_max_bytes,
        settings.embedding_cache_ttl_seconds,
    )

    yield

    logger.info(
        "Shutting down with %d cached query embeddings (%d bytes)",
        len(cache),
        cache.total_bytes,
    )
    await engine.dispose()


async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag the request's log records with a caller-supplied or fresh request id."""
    rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    request_id_var.set(rid)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 that still carries the request id.

    Runs outside the request-id middleware, so the header is set here.
    """
    logger.exception("Unhandled exception: %s", exc)
    rid = request_id_var.get() or resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
        headers={REQUEST_ID_HEADER: rid},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            release=settings.version,
            traces_sample_rate=0.1,
        )

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        openapi_url=f"{settings.api_v1_prefix}/openapi.json",
        docs_url=f"{settings.api_v1_prefix}/docs",
        redoc_url=f"{settings.api_v1_prefix}/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_middleware(SlowAPIMiddleware)

    # Search is read-only; the storefront only ever issues GETs
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.middleware("http")(request_id_middleware)

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/docs", include_in_schema=False)
    async def docs_redirect() -> RedirectResponse:
        return RedirectResponse(url=f"{settings.api_v1_prefix}/docs")

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": settings.project_name,
            "version": settings.version,
            "docs": f"{settings.api_v1_prefix}/docs",
            "health": f"{settings.api_v1_prefix}/health",
            "search": f"{settings.api_v1_prefix}/products/search",
        }

    return app


app = create_app()
