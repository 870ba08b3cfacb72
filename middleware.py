"""Request logging with per-request correlation ids."""
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from logging_config import generate_request_id, get_logger, set_request_id

logger = get_logger(__name__)

SKIP_LOGGING_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration; echo ``X-Request-ID``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        if request.url.path not in SKIP_LOGGING_PATHS:
            logger.info(
                "HTTP %s %s - %d (%.2fms)",
                request.method, request.url.path, response.status_code, duration_ms,
                extra={"http_status": response.status_code, "duration_ms": round(duration_ms, 2)},
            )
        return response
