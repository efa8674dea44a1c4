"""Celery application for background embedding work."""

from typing import Any

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from storefront_search.core.config import settings
from storefront_search.core.logging_config import setup_logging

EMBEDDINGS_QUEUE = "embeddings"

celery_app = Celery(
    "storefront_search",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=["storefront_search.workers.tasks.embedding"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A full backfill over a large catalog is many provider round trips
    task_time_limit=1800,
    task_soft_time_limit=1740,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    result_expires=3600,
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
    task_default_queue="default",
    task_routes={"tasks.embedding.*": {"queue": EMBEDDINGS_QUEUE}},
    # Shares the provider quota with search traffic
    task_annotations={"tasks.embedding.embed_product": {"rate_limit": "120/m"}},
    beat_schedule={
        "backfill-product-embeddings": {
            "task": "tasks.embedding.backfill_product_embeddings",
            "schedule": 600.0,
            "options": {"queue": EMBEDDINGS_QUEUE},
        },
    },
)


@celery_setup_logging.connect
def configure_worker_logging(**_kwargs: Any) -> None:
    """Use the API's JSON log format in workers instead of Celery's own."""
    setup_logging(debug=settings.debug, service="worker")


class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Retries provider and database hiccups with jittered backoff."""

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
    max_retries = 3
