"""
Chat orchestration: planner → transaction builder → response assembler.

One ``ChatService`` is created by the application factory and shared by all
requests; it holds no per-request state.
"""

import logging
import time
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

from ..services.offerings import OfferingRegistry
from ..types import AssistantPlan, ChatRequest
from .assembler import assemble_plan, new_plan_id
from .execution import TransactionBuilder
from .planning import IntentPlanner
from .streaming import plan_event_stream

_logger = logging.getLogger(__name__)


class ChatService:
    """Turns a chat request into an ``AssistantPlan``."""

    def __init__(self, planner: IntentPlanner, builder: TransactionBuilder, settings: Any) -> None:
        self.planner = planner
        self.builder = builder
        self.settings = settings

    async def create_plan(
        self,
        request: ChatRequest,
        registry: OfferingRegistry,
        plan_id: Optional[str] = None,
    ) -> AssistantPlan:
        start = time.perf_counter()

        intent = await self.planner.plan(request.messages, registry)
        result = self.builder.build(intent, request.context, registry)
        plan = assemble_plan(intent, result, self.settings, plan_id=plan_id)

        _logger.info(
            "Plan %s ready: action=%s txs=%d warnings=%d (%.1fms)",
            plan.id,
            plan.action_type,
            len(plan.txs),
            len(plan.warnings),
            (time.perf_counter() - start) * 1000,
        )
        return plan

    def stream_plan(
        self,
        request: ChatRequest,
        registry: OfferingRegistry,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncGenerator[str, None]:
        """SSE generator delivering ``ready``, ``plan`` and ``done`` for one request."""
        plan_id = new_plan_id()
        return plan_event_stream(
            lambda: self.create_plan(request, registry, plan_id=plan_id),
            correlation_id=plan_id,
            heartbeat_seconds=self.settings.stream_heartbeat_seconds,
            is_disconnected=is_disconnected,
            poll_seconds=self.settings.stream_disconnect_poll_seconds,
        )
