"""
Custom middleware for the FastAPI application.
"""
import time
from typing import Callable, Dict, List
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from .logging import get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=round(process_time, 4),
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limit per client IP, kept in process memory."""

    def __init__(self, app, calls: int = 100, period: int = 60):
        super().__init__(app)
        self.calls = calls
        self.period = period
        self.clients: Dict[str, List[float]] = {}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.client:
            return await call_next(request)

        client_ip = request.client.host
        now = time.time()
        window_start = now - self.period

        # Drop clients with no requests inside the window
        self.clients = {
            ip: [t for t in timestamps if t > window_start]
            for ip, timestamps in self.clients.items()
            if any(t > window_start for t in timestamps)
        }

        recent = self.clients.get(client_ip, [])
        reset = str(int(now + self.period))
        if len(recent) >= self.calls:
            logger.warning(
                "Rate limit exceeded",
                client_ip=client_ip,
                requests=len(recent),
                limit=self.calls,
            )
            return JSONResponse(
                status_code=429,
                content={"success": False, "error": "Rate limit exceeded", "code": "rate_limited"},
                headers={
                    "X-RateLimit-Limit": str(self.calls),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": reset,
                },
            )

        self.clients[client_ip] = recent + [now]
        remaining = max(0, self.calls - len(self.clients[client_ip]))

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.calls)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = reset
        return response
