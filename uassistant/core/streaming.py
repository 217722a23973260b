"""Server-Sent Events delivery of a single assembled plan.

Each connection emits, in order: ``ready`` (correlation id), exactly one
``plan`` carrying the complete plan, and ``done``. Comment-only keep-alive
lines are interleaved while the plan is being produced. Plan content is
never streamed partially.
"""

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional

from fastapi.encoders import jsonable_encoder

from ..types import AssistantPlan

logger = logging.getLogger(__name__)

KEEPALIVE = ": keep-alive\n\n"


def sse_event(event: str, payload: Dict[str, Any]) -> str:
    encoded = jsonable_encoder(payload)
    return f"event: {event}\ndata: {json.dumps(encoded, ensure_ascii=False)}\n\n"


async def plan_event_stream(
    produce_plan: Callable[[], Awaitable[AssistantPlan]],
    *,
    correlation_id: str,
    heartbeat_seconds: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    poll_seconds: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Run ``produce_plan`` and deliver its result as ``ready → plan → done``.

    The plan task is cancelled on every exit path (client disconnect,
    generator close or cancellation) so no provider call outlives the
    connection. The client is polled every ``poll_seconds`` (capped at the
    heartbeat interval), independently of keep-alive emission.
    """
    yield sse_event("ready", {"id": correlation_id})

    loop = asyncio.get_running_loop()
    poll = min(poll_seconds, heartbeat_seconds)
    task = asyncio.ensure_future(produce_plan())
    try:
        last_beat = loop.time()
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll)
            if done:
                break
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected before plan %s was ready", correlation_id)
                return
            if loop.time() - last_beat >= heartbeat_seconds:
                last_beat = loop.time()
                yield KEEPALIVE

        try:
            plan = task.result()
        except Exception as exc:
            logger.warning("Streaming plan %s failed: %s", correlation_id, exc, exc_info=True)
            yield sse_event("error", {
                "id": correlation_id,
                "error": "PROCESSING_ERROR",
                "message": "Something went wrong while preparing your plan. Please try again.",
            })
            return

        yield sse_event("plan", plan.to_wire())
        yield sse_event("done", {"id": correlation_id})
    finally:
        if not task.done():
            task.cancel()
