"""
Metrics and observability.
"""
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request, Response
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Prometheus metrics
request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

active_connections = Gauge(
    'http_active_connections',
    'Active HTTP connections'
)

# Application metrics
celery_tasks_total = Counter(
    'celery_tasks_total',
    'Total Celery tasks',
    ['task_name', 'status']
)

article_workflow_events_total = Counter(
    'article_workflow_events_total',
    'Article lifecycle transitions',
    ['event']
)

generation_dispatch_total = Counter(
    'generation_dispatch_total',
    'Calls to the generation service',
    ['kind', 'status']
)

webhook_delivery_total = Counter(
    'webhook_delivery_total',
    'Webhook delivery attempts',
    ['status']
)

_NUMERIC_SEGMENT = re.compile(r"^\d+$")


class MetricsCollector:
    """Collects and manages application metrics."""

    def __init__(self):
        self.start_time = time.time()

    def record_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        request_count.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_celery_task(self, task_name: str, status: str):
        celery_tasks_total.labels(task_name=task_name, status=status).inc()

    def record_workflow_event(self, event: str):
        """Count an article lifecycle event such as ``published`` or ``generation_started``."""
        article_workflow_events_total.labels(event=event).inc()

    def record_generation_dispatch(self, kind: str, status: str):
        generation_dispatch_total.labels(kind=kind, status=status).inc()

    def record_webhook_delivery(self, status: str):
        webhook_delivery_total.labels(status=status).inc()

    def get_app_info(self) -> Dict[str, Any]:
        """Get application information."""
        uptime = time.time() - self.start_time
        return {
            "app_name": "Inkflow API",
            "version": "1.0.0",
            "environment": settings.environment,
            "uptime_seconds": round(uptime, 2),
            "started_at": datetime.fromtimestamp(self.start_time, tz=timezone.utc).isoformat()
        }


# Global metrics collector instance
metrics_collector = MetricsCollector()


def normalize_endpoint(path: str) -> str:
    """Collapse numeric ids so every article shares one metrics series."""
    parts = [p for p in path.split('/') if p]
    normalized = ['{id}' if _NUMERIC_SEGMENT.match(p) else p for p in parts]
    return '/' + '/'.join(normalized) if normalized else '/'


class MetricsMiddleware:
    """ASGI middleware collecting HTTP request metrics."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        request = Request(scope, receive)
        active_connections.inc()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            metrics_collector.record_request(
                method=request.method,
                endpoint=normalize_endpoint(request.url.path),
                status_code=status_code,
                duration=time.time() - start_time,
            )
            active_connections.dec()


def setup_monitoring(app: FastAPI):
    """Set up monitoring and metrics for the application."""
    app.add_middleware(MetricsMiddleware)

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    logger.info("Monitoring middleware configured")


async def health_check_services() -> Dict[str, Any]:
    """Perform health checks on backing services."""
    from app.core.database import AsyncSessionLocal

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {}
    }

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        health_status["services"]["database"] = {"status": "healthy"}
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        health_status["services"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    return health_status
