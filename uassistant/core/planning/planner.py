"""IntentPlanner - turns the latest chat message into a validated Intent.

Each request runs a two-state machine:
- SHORTCUT: greetings, thanks and help requests are answered with the canned
  help intent without touching the completion provider.
- MODEL_CALL: the provider is asked for a single JSON object describing the
  intent. Any failure (no provider, timeout, transport error, non-JSON or
  schema-invalid reply) degrades to the canned help intent.

A valid intent then goes through a local repair pass that fills inferable
fields from the raw text (amounts, uShare ids) and rewrites requests the
contracts cannot serve.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from ...providers.llm import LLMMessage, LLMProvider, LLMProviderError
from ...services.offerings import OfferingRegistry
from ...types import ChatMessage
from .lexicon import is_small_talk
from .models import AMOUNT_ACTIONS, ActionType, Intent, IntentDraft
from .prompts import (
    HELP_MESSAGE,
    MISSING_AMOUNT_EXAMPLES,
    SELL_UNSUPPORTED_MESSAGE,
    build_planner_prompt,
    clarify_offering_message,
)

logger = logging.getLogger(__name__)

# First human quantity in the text; skips digits glued to words or hex literals.
# Thousands separators must come in groups of three, anything else is not adopted.
AMOUNT_IN_TEXT = re.compile(r"(?<![\w.,])(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)(?!\w|,\d)")
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

DEFAULT_HISTORY_LIMIT = 12


class PlannerState(str, Enum):
    SHORTCUT = "shortcut"
    MODEL_CALL = "model_call"


class PlannerDegradation(Exception):
    """The model path could not produce a usable intent."""


def help_intent(interpretation: str = "Greeting or help request") -> Intent:
    """Canned guidance returned for small talk and every degraded model call."""
    return Intent(
        action_type=ActionType.QUESTION,
        interpretation=interpretation,
        user_message=HELP_MESSAGE,
    )


def first_amount_in_text(text: str) -> Optional[str]:
    match = AMOUNT_IN_TEXT.search(text or "")
    return match.group(1).replace(",", "") if match else None


def parse_model_reply(content: Optional[str]) -> Intent:
    """Parse and validate the provider reply.

    Raises:
        PlannerDegradation: when the reply is empty, not a JSON object or
            fails the intent schema.
    """
    text = (content or "").strip()
    if not text:
        raise PlannerDegradation("empty reply")

    fenced = _CODE_FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        payload: Any = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as exc:
        raise PlannerDegradation(f"non-JSON reply: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise PlannerDegradation("reply is not a JSON object")

    try:
        return Intent.model_validate(payload)
    except ValidationError as exc:
        raise PlannerDegradation(f"schema-invalid reply ({exc.error_count()} issue(s))") from exc


class IntentPlanner:
    """Plans a single request. Stateless apart from the injected provider.

    Usage:
        planner = IntentPlanner(provider, settings)
        intent = await planner.plan(request.messages, registry)
    """

    def __init__(
        self,
        provider: Optional[LLMProvider],
        settings: Any,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.history_limit = history_limit

    async def plan(self, messages: Sequence[ChatMessage], registry: OfferingRegistry) -> Intent:
        text = _latest_user_text(messages)

        if is_small_talk(text):
            logger.info("Planner state=%s", PlannerState.SHORTCUT.value)
            return help_intent()

        logger.info("Planner state=%s", PlannerState.MODEL_CALL.value)
        try:
            intent = await self._call_model(messages, registry)
        except PlannerDegradation as exc:
            logger.warning("Planner degraded to help intent: %s", exc)
            return help_intent("Could not interpret the request")

        return self.repair(intent, text, registry)

    async def _call_model(self, messages: Sequence[ChatMessage], registry: OfferingRegistry) -> Intent:
        if self.provider is None:
            raise PlannerDegradation("no completion provider configured")

        prompt = build_planner_prompt(registry, self.settings.system_prompt)
        llm_messages: List[LLMMessage] = [LLMMessage(role="system", content=prompt)]
        llm_messages.extend(
            LLMMessage(role=m.role, content=m.content) for m in list(messages)[-self.history_limit:]
        )

        try:
            response = await asyncio.wait_for(
                self.provider.generate_response(
                    llm_messages,
                    max_tokens=self.settings.llm_max_tokens,
                    temperature=self.settings.planner_temperature,
                    response_format={"type": "json_object"},
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise PlannerDegradation(f"provider timed out after {self.settings.llm_timeout_seconds}s") from exc
        except LLMProviderError as exc:
            raise PlannerDegradation(f"provider error: {exc}") from exc
        except Exception as exc:
            raise PlannerDegradation(f"provider call failed: {type(exc).__name__}: {exc}") from exc

        return parse_model_reply(response.content)

    def repair(self, intent: Intent, text: str, registry: OfferingRegistry) -> Intent:
        """Apply deterministic local corrections without another model call."""
        draft = IntentDraft.from_intent(intent)

        if draft.action_type == ActionType.SELL_ASSET and not self.settings.market_supports_sell:
            draft.action_type = ActionType.UNSUPPORTED
            draft.interpretation = "Sell uShares (not supported)"
            draft.user_message = SELL_UNSUPPORTED_MESSAGE
            draft.warn("Selling uShares is not supported by the market contract.")
            return draft.commit()

        if draft.action_type in AMOUNT_ACTIONS and not draft.amount:
            found = first_amount_in_text(text)
            if found:
                draft.amount = found
            else:
                example = MISSING_AMOUNT_EXAMPLES[draft.action_type.value]
                draft.warn(f"Missing amount. Please include it, e.g. \"{example}\".")

        if draft.action_type == ActionType.BUY_ASSET and not draft.asset_id:
            selection = registry.resolve_from_text(text)
            if selection.found:
                draft.asset_id = selection.id
            else:
                draft.user_message = clarify_offering_message(registry)
                draft.warn("Missing uShare: tell me which uShare to buy (name, symbol or uShare ID).")

        return draft.commit()


def _latest_user_text(messages: Sequence[ChatMessage]) -> str:
    for message in reversed(list(messages)):
        if message.role == "user":
            return message.content
    return ""


__all__ = [
    "IntentPlanner",
    "PlannerState",
    "PlannerDegradation",
    "help_intent",
    "first_amount_in_text",
    "parse_model_reply",
]
