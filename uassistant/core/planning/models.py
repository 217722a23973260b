"""Intent models for the planning pipeline.

This module defines:
- ActionType: closed set of on-chain actions the assistant can plan
- Intent: validated, immutable description of what the user wants
- IntentDraft: mutable builder used while repairing an intent
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...services.identifiers import coerce_identifier

_DECIMAL_STRING_RE = re.compile(r"^\d+(?:\.\d+)?$")


class ActionType(str, Enum):
    """Types of actions an intent can request."""

    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"
    STAKE_ALL = "STAKE_ALL"
    UNSTAKE_ALL = "UNSTAKE_ALL"
    BUY_ASSET = "BUY_ASSET"
    SELL_ASSET = "SELL_ASSET"
    VOTE = "VOTE"
    CLAIM_VESTING = "CLAIM_VESTING"
    QUESTION = "QUESTION"
    UNSUPPORTED = "UNSUPPORTED"


# Actions whose transaction needs a human-unit amount
AMOUNT_ACTIONS = frozenset({ActionType.STAKE, ActionType.UNSTAKE, ActionType.BUY_ASSET})


def normalize_amount(value: Any) -> Optional[str]:
    """Normalize a JSON amount into a plain decimal string.

    Accepts strings, ints and ``Decimal`` (JSON floats are parsed as
    ``Decimal`` upstream). Binary floats and negatives are rejected.
    """
    if value is None:
        return None
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError("amount must be a decimal string")
    if isinstance(value, (int, Decimal)):
        if value < 0:
            raise ValueError("amount must be non-negative")
        text = format(Decimal(value), "f")
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
    else:
        raise ValueError("amount must be a decimal string")
    if not _DECIMAL_STRING_RE.fullmatch(text):
        raise ValueError("amount must be a non-negative decimal string")
    return text


class Intent(BaseModel):
    """Validated intent, the output of the planner."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    action_type: ActionType = Field(alias="actionType")
    interpretation: str = Field(max_length=500)
    user_message: str = Field(alias="userMessage", max_length=2000)
    amount: Optional[str] = None
    asset_id: Optional[str] = Field(default=None, alias="assetId")
    proposal_id: Optional[int] = Field(default=None, alias="proposalId", ge=0)
    vote: Optional[bool] = None
    warnings: List[str] = Field(default_factory=list)
    docs_url: Optional[str] = Field(default=None, alias="docsUrl")
    support_email: Optional[str] = Field(default=None, alias="supportEmail")

    @field_validator("amount", mode="before")
    @classmethod
    def _validate_amount(cls, value: Any) -> Optional[str]:
        return normalize_amount(value)

    @field_validator("asset_id", mode="before")
    @classmethod
    def _validate_asset_id(cls, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if not isinstance(value, str):
            value = str(value)
        return coerce_identifier(value)

    @field_validator("proposal_id", mode="before")
    @classmethod
    def _validate_proposal_id(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("proposalId must be an integer")
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return value

    @field_validator("docs_url", "support_email", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass
class IntentDraft:
    """Accumulates repairs to an intent and commits them once.

    Usage:
        draft = IntentDraft.from_intent(intent)
        draft.amount = "250"
        draft.warn("...")
        repaired = draft.commit()
    """

    action_type: ActionType
    interpretation: str
    user_message: str
    amount: Optional[str] = None
    asset_id: Optional[str] = None
    proposal_id: Optional[int] = None
    vote: Optional[bool] = None
    docs_url: Optional[str] = None
    support_email: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_intent(cls, intent: Intent) -> IntentDraft:
        return cls(
            action_type=intent.action_type,
            interpretation=intent.interpretation,
            user_message=intent.user_message,
            amount=intent.amount,
            asset_id=intent.asset_id,
            proposal_id=intent.proposal_id,
            vote=intent.vote,
            docs_url=intent.docs_url,
            support_email=intent.support_email,
            warnings=list(intent.warnings),
        )

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def commit(self) -> Intent:
        return Intent(
            action_type=self.action_type,
            interpretation=self.interpretation,
            user_message=self.user_message,
            amount=self.amount,
            asset_id=self.asset_id,
            proposal_id=self.proposal_id,
            vote=self.vote,
            warnings=list(self.warnings),
            docs_url=self.docs_url,
            support_email=self.support_email,
        )
