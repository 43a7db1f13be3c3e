"""Structured request logging.

Binds a request id into structlog contextvars so every log line emitted
while handling the request carries it, then logs one summary line.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.metrics import http_requests

log = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                exc_info=True,
            )
            http_requests.labels(method=request.method, status="500").inc()
            raise

        duration_ms = round((time.monotonic() - start) * 1000, 1)
        http_requests.labels(method=request.method, status=str(response.status_code)).inc()
        log.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        response.headers["x-request-id"] = request_id
        return response
