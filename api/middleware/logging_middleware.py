"""
Request logging middleware.

Each request gets a short correlation id, taken from an incoming X-Request-ID
header when the caller supplies one. The id is bound into structlog's context
so every log line emitted while handling the request carries it, and it is
echoed back together with the processing time.
"""
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = structlog.stdlib.get_logger(__name__)


def _client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else ""


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=_client_ip(request),
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", duration_ms=round((time.perf_counter() - started) * 1000))
            raise

        elapsed = time.perf_counter() - started
        log = logger.warning if response.status_code >= 400 else logger.info
        log("request_finished", status_code=response.status_code, duration_ms=round(elapsed * 1000))

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        return response
