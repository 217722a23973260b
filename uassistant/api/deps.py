"""Request-scoped accessors for the services held on ``app.state``."""

from fastapi import Request

from ..core.chat import ChatService
from ..services.offerings import OfferingRegistry


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


async def get_registry(request: Request) -> OfferingRegistry:
    """Resolve the offering registry, loading it on first use.

    Raises:
        ConfigError: when the offerings configuration is invalid.
    """
    return await request.app.state.registry.get()
