"""
Access logging with a per-request correlation id.

The id comes from the caller's ``x-request-id`` header when present, is bound
into structlog's context for every log line written while serving the
request, and is echoed back on the response.
"""

import secrets
import time
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("uassistant.http")

REQUEST_ID_HEADER = "x-request-id"
# Probes hit /health constantly; keep them out of INFO output
QUIET_PATHS = frozenset({"/health"})


def _log_method(status_code: int, path: str) -> Callable[..., None]:
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    if path in QUIET_PATHS:
        return logger.debug
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one ``http_request`` record per request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or secrets.token_hex(4)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            path = request.url.path
            _log_method(status_code, path)(
                "http_request",
                method=request.method,
                path=path,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
