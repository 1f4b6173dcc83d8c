# app/transport/middleware.py
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from app.infra.logging_config import get_logger, LogContext

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id (incoming X-Request-ID or a fresh UUID) for tracing"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request with status and duration"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        log_ctx = LogContext(logger, request_id=getattr(request.state, "request_id", None))
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start_time) * 1000
            log_ctx.exception("Request failed: %s %s duration=%.1fms", request.method, request.url.path, duration_ms)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_ctx.info(
            "%s %s status=%d duration=%.1fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response
