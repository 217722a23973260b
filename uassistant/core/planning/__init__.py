"""Intent planning for the assistant.

Key Components:
    - ActionType: closed set of plannable on-chain actions
    - Intent: validated, immutable planner output
    - IntentPlanner: small-talk shortcut, model call, degradation and repair

Example Usage:
    from uassistant.core.planning import IntentPlanner

    planner = IntentPlanner(provider, settings)
    intent = await planner.plan(request.messages, registry)
"""

from .models import AMOUNT_ACTIONS, ActionType, Intent, IntentDraft
from .planner import (
    IntentPlanner,
    PlannerDegradation,
    PlannerState,
    first_amount_in_text,
    help_intent,
    parse_model_reply,
)

__all__ = [
    "AMOUNT_ACTIONS",
    "ActionType",
    "Intent",
    "IntentDraft",
    "IntentPlanner",
    "PlannerDegradation",
    "PlannerState",
    "first_amount_in_text",
    "help_intent",
    "parse_model_reply",
]
