import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from askdesk.metrics import http_requests, http_request_duration

log = structlog.get_logger()

_UUID_SEGMENT = re.compile(
    r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def normalize_path(path: str) -> str:
    """Collapse UUID path segments so metric labels stay low-cardinality."""
    return _UUID_SEGMENT.sub("/{id}", path)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        # Clear and bind per-request context
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )

        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.monotonic() - start
            log.error("request_failed", duration_ms=round(duration * 1000, 2))
            raise

        duration = time.monotonic() - start
        status_code = response.status_code

        normalized_path = normalize_path(request.url.path)
        http_requests.labels(method=request.method, path=normalized_path, status_code=str(status_code)).inc()
        http_request_duration.labels(method=request.method, path=normalized_path).observe(duration)

        log.info(
            "request_completed",
            status_code=status_code,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
