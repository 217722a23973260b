"""Assembles the client-visible plan from planner and builder output."""

from __future__ import annotations

import secrets
from typing import Any, Optional

from ..types import AssistantPlan
from .execution.tx_builder import BuildResult
from .planning.models import Intent


def new_plan_id() -> str:
    """Generate a unique, opaque plan ID."""
    return f"plan_{secrets.token_hex(16)}"


def assemble_plan(
    intent: Intent,
    result: BuildResult,
    settings: Any,
    plan_id: Optional[str] = None,
) -> AssistantPlan:
    """Merge intent, transactions and fallback metadata into one immutable plan.

    ``docsUrl``/``supportEmail`` from the intent win over configuration, and
    ``tx`` mirrors ``txs[0]`` (or ``None``) for older clients.
    """
    txs = list(result.txs)
    return AssistantPlan(
        id=plan_id or new_plan_id(),
        action_type=intent.action_type.value,
        interpretation=intent.interpretation,
        user_message=intent.user_message,
        warnings=list(result.warnings),
        txs=txs,
        tx=txs[0] if txs else None,
        docs_url=intent.docs_url or settings.docs_url,
        support_email=intent.support_email or settings.support_email,
    )
