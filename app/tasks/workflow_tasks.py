"""
Celery tasks driving the time-based parts of the article workflow.

This module contains background tasks for:
- Publishing articles whose publish date has passed
- Starting queued generations that are due
- Delivering publish webhooks
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional
from celery import shared_task
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.celery_app import celery_app  # noqa: F401  binds shared tasks to the configured app
from app.core.database import DATABASE_URL
from app.core.logging import get_logger
from app.core.monitoring import metrics_collector
from app.services.article_service import article_service, dispatch_generation
from app.services.generation_client import GenerationServiceClient
from app.services import webhook_service

logger = get_logger(__name__)


@asynccontextmanager
async def _task_sessions():
    """Each task run gets its own engine; Celery workers do not share the API's event loop."""
    engine = create_async_engine(DATABASE_URL, poolclass=NullPool)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


def enqueue_webhook(delivery_id: int) -> None:
    """Queue a delivery; broker outages are logged, the delivery stays pending."""
    try:
        deliver_webhook.delay(delivery_id)
    except Exception as e:
        logger.error("Failed to enqueue webhook delivery", delivery_id=delivery_id, error=str(e))


async def publish_due(session_factory: async_sessionmaker, now: Optional[datetime] = None) -> Dict[str, Any]:
    async with session_factory() as session:
        published, deliveries = await article_service.publish_due_articles(session, now)
    for delivery_id in deliveries:
        enqueue_webhook(delivery_id)
    return {"success": True, "published": published, "webhooks": deliveries}


async def dispatch_due(
    session_factory: async_sessionmaker,
    client: Optional[GenerationServiceClient] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    client = client or GenerationServiceClient()
    async with session_factory() as session:
        claimed = await article_service.claim_due_queue_items(session, now)

    started, failed = [], []
    for queue_item_id, generation_id in claimed:
        ok = await dispatch_generation(session_factory, client, generation_id, queue_item_id=queue_item_id)
        (started if ok else failed).append(queue_item_id)
    return {"success": True, "started": started, "failed": failed}


async def deliver(session_factory: async_sessionmaker, delivery_id: int) -> Dict[str, Any]:
    async with session_factory() as session:
        delivery = await webhook_service.deliver(session, delivery_id)
    if delivery is None:
        return {"success": False, "delivery_id": delivery_id, "error": "Delivery not pending"}
    return {"success": delivery.status == "success", "delivery_id": delivery_id, "status": delivery.status}


def _run(task_name: str, coro_factory) -> Dict[str, Any]:
    async def _with_sessions():
        async with _task_sessions() as session_factory:
            return await coro_factory(session_factory)

    try:
        result = asyncio.run(_with_sessions())
    except Exception as e:
        metrics_collector.record_celery_task(task_name, "failure")
        logger.error("Task failed", task=task_name, error=str(e))
        raise
    metrics_collector.record_celery_task(task_name, "success" if result.get("success") else "failure")
    logger.info("Task finished", task=task_name, result=result)
    return result


@shared_task(name='app.tasks.workflow_tasks.publish_due_articles')
def publish_due_articles() -> Dict[str, Any]:
    """Publish every article whose scheduled publish date has passed."""
    return _run("publish_due_articles", publish_due)


@shared_task(name='app.tasks.workflow_tasks.dispatch_due_generations')
def dispatch_due_generations() -> Dict[str, Any]:
    """Start generation for queue entries scheduled at or before now."""
    return _run("dispatch_due_generations", dispatch_due)


@shared_task(
    bind=True,
    name='app.tasks.workflow_tasks.deliver_webhook',
    max_retries=3,
    default_retry_delay=60,
)
def deliver_webhook(self, delivery_id: int) -> Dict[str, Any]:
    result = _run("deliver_webhook", lambda factory: deliver(factory, delivery_id))
    if result.get("status") == "failed":
        raise self.retry()
    return result
