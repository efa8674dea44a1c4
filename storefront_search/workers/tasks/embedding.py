"""Celery tasks that keep product embeddings filled in for semantic search."""

import asyncio
import logging
from typing import Any

from sqlalchemy import select

from storefront_search.core.database import async_session_maker
from storefront_search.models.product import Product
from storefront_search.services.embedding_service import get_embedding_service, normalize_text
from storefront_search.workers.celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def product_embedding_text(product: Product) -> str:
    """Text a product is embedded from: its title and short description."""
    return normalize_text(f"{product.title}. {product.short_description}")


def _run(coro: Any) -> Any:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _embed_products(products: list[Product]) -> None:
    texts = [product_embedding_text(p) for p in products]
    embeddings = await get_embedding_service().generate_embeddings_batch(texts)
    for product, embedding in zip(products, embeddings, strict=True):
        product.embedding = embedding


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.embedding.backfill_product_embeddings",
    base=BaseTask,
    bind=True,
)
def backfill_product_embeddings(
    self: BaseTask,  # noqa: ARG001
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> dict[str, Any]:
    """Embed every product that has no embedding yet."""
    result: dict[str, Any] = _run(_backfill_product_embeddings_async(batch_size))
    return result


async def _backfill_product_embeddings_async(batch_size: int = DEFAULT_BATCH_SIZE) -> dict[str, Any]:
    """Embed products missing an embedding, committing once per batch.

    Args:
        batch_size: Products per provider call and per commit

    Returns:
        Dict with status and products_embedded count
    """
    embedded = 0

    async with async_session_maker() as session:
        while True:
            stmt = (
                select(Product)
                .where(Product.embedding.is_(None))
                .order_by(Product.id)
                .limit(batch_size)
            )
            result = await session.execute(stmt)
            products = list(result.scalars().all())
            if not products:
                break

            await _embed_products(products)
            await session.commit()
            embedded += len(products)
            logger.info("Embedded %d products (%d so far)", len(products), embedded)

            if len(products) < batch_size:
                break

    return {"status": "completed", "products_embedded": embedded}


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.embedding.reembed_all_products",
    base=BaseTask,
    bind=True,
)
def reembed_all_products(
    self: BaseTask,  # noqa: ARG001
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> dict[str, Any]:
    """Recompute every product's embedding, e.g. after changing embedding_model."""
    result: dict[str, Any] = _run(_reembed_all_products_async(batch_size))
    return result


async def _reembed_all_products_async(batch_size: int = DEFAULT_BATCH_SIZE) -> dict[str, Any]:
    """Overwrite the embedding of every product, walking the table by id.

    Query vectors and product vectors are only comparable when they come from
    the same model, so this must run whenever the configured model changes.
    A retry after a failure starts over from the first id.

    Args:
        batch_size: Products per provider call and per commit

    Returns:
        Dict with status and products_embedded count
    """
    embedded = 0
    last_id: str | None = None

    async with async_session_maker() as session:
        while True:
            stmt = select(Product).order_by(Product.id).limit(batch_size)
            if last_id is not None:
                stmt = stmt.where(Product.id > last_id)
            result = await session.execute(stmt)
            products = list(result.scalars().all())
            if not products:
                break

            await _embed_products(products)
            await session.commit()
            embedded += len(products)
            last_id = products[-1].id
            logger.info("Re-embedded %d products (%d so far)", len(products), embedded)

            if len(products) < batch_size:
                break

    return {"status": "completed", "products_embedded": embedded}


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.embedding.embed_product",
    base=BaseTask,
    bind=True,
)
def embed_product(self: BaseTask, product_id: str) -> dict[str, Any]:  # noqa: ARG001
    """Recompute one product's embedding after its title or description changed."""
    result: dict[str, Any] = _run(_embed_product_async(product_id))
    return result


async def _embed_product_async(product_id: str) -> dict[str, Any]:
    """Async implementation of single-product embedding.

    Args:
        product_id: The product ID

    Returns:
        Dict with product_id and status ("completed" or "not_found")
    """
    async with async_session_maker() as session:
        product = await session.get(Product, product_id)
        if product is None:
            logger.warning("Product %s not found, skipping embedding", product_id)
            return {"product_id": product_id, "status": "not_found"}

        embedding_service = get_embedding_service()
        product.embedding = await embedding_service.generate_embedding(
            product_embedding_text(product)
        )
        await session.commit()

    return {"product_id": product_id, "status": "completed"}
