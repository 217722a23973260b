from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from ..core.chat import ChatService
from ..services.offerings import OfferingRegistry
from ..types import ChatRequest
from .deps import get_chat_service, get_registry

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


@router.post("/chat")
async def chat_endpoint(
    body: ChatRequest,
    service: ChatService = Depends(get_chat_service),
    registry: OfferingRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Plan the latest user message and return the complete plan."""
    plan = await service.create_plan(body, registry)
    return plan.to_wire()


@router.post("/chat/stream")
async def chat_stream_endpoint(
    body: ChatRequest,
    request: Request,
    service: ChatService = Depends(get_chat_service),
    registry: OfferingRegistry = Depends(get_registry),
) -> StreamingResponse:
    """Streaming chat endpoint compliant with Server-Sent Events."""
    generator = service.stream_plan(body, registry, is_disconnected=request.is_disconnected)
    return StreamingResponse(generator, media_type="text/event-stream", headers=SSE_HEADERS)
