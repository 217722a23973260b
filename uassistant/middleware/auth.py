"""
API key gate for the chat endpoints.

Accepts ``x-api-key: <key>`` or ``Authorization: Bearer <key>`` on paths
starting with ``/chat``. CORS preflights pass through.
"""

import hmac
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/chat"


def _presented_key(request: Request) -> str:
    x_api_key = request.headers.get("x-api-key")
    if x_api_key:
        return x_api_key.strip()
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return ""


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Require the configured API key on /chat*.

    With no key configured the gate is open in development and the
    endpoints answer 500 ``SERVER_MISCONFIGURED`` in production.
    """

    def __init__(self, app, api_key: str = "", production: bool = False):
        super().__init__(app)
        self.api_key = api_key.strip()
        self.production = production

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(PROTECTED_PREFIX) or request.method == "OPTIONS":
            return await call_next(request)

        if not self.api_key:
            if self.production:
                logger.error("UASSISTANT_API_KEY is missing in production.")
                return JSONResponse(status_code=500, content={"error": "SERVER_MISCONFIGURED"})
            return await call_next(request)

        presented = _presented_key(request)
        if not presented or not hmac.compare_digest(presented.encode(), self.api_key.encode()):
            return JSONResponse(status_code=401, content={"error": "UNAUTHORIZED"})

        return await call_next(request)
