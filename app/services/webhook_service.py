"""
Delivery of recorded webhook events.
"""
from typing import Optional
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.core.monitoring import metrics_collector
from app.models.webhook import WebhookDelivery
from app.utils.dates import utcnow

logger = get_logger(__name__)


async def deliver(
    session: AsyncSession,
    delivery_id: int,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[WebhookDelivery]:
    """
    POST a pending delivery's payload once and record the outcome.

    Returns None when the delivery no longer exists or was already sent.
    """
    delivery = await session.get(WebhookDelivery, delivery_id)
    if delivery is None or delivery.status == "success":
        return None

    delivery.attempts = (delivery.attempts or 0) + 1
    try:
        async with httpx.AsyncClient(
            timeout=settings.webhook_timeout,
            headers={"User-Agent": "Inkflow-Webhooks/1.0", "X-Inkflow-Event": delivery.event_type},
            transport=transport,
        ) as client:
            response = await client.post(delivery.webhook_url, json=delivery.request_payload or {})
        delivery.response_status = response.status_code
        if response.is_success:
            delivery.status = "success"
            delivery.delivered_at = utcnow()
            delivery.error_message = None
        else:
            delivery.status = "failed"
            delivery.error_message = f"HTTP {response.status_code}"
    except httpx.HTTPError as e:
        delivery.status = "failed"
        delivery.error_message = str(e) or type(e).__name__

    await session.commit()
    metrics_collector.record_webhook_delivery(delivery.status)
    log = logger.info if delivery.status == "success" else logger.warning
    log(
        "Webhook delivery attempted",
        delivery_id=delivery.id,
        article_id=delivery.article_id,
        status=delivery.status,
        response_status=delivery.response_status,
    )
    return delivery
