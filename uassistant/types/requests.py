import re
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_BYTES32_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
_UINT_RE = re.compile(r"^\d+$")


def _check_address(value: str) -> str:
    if not _ADDRESS_RE.fullmatch(value):
        raise ValueError("Invalid EVM address")
    return value


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"] = Field(description="Message role: user or assistant")
    content: str = Field(min_length=1, max_length=8000, description="Message content")


class VestingRecord(BaseModel):
    """Vesting allocation leaf, as published in the Merkle distribution."""

    model_config = ConfigDict(populate_by_name=True)

    beneficiary: str = Field(description="Address entitled to the allocation")
    total_amount: str = Field(alias="totalAmount", description="Total allocation (decimal integer, smallest unit)")
    tge_amount: str = Field(default="0", alias="tgeAmount", description="Amount unlocked at TGE (decimal integer)")
    cliff_duration: str = Field(default="0", alias="cliffDuration", description="Cliff length in seconds")
    vesting_duration: str = Field(default="0", alias="vestingDuration", description="Linear vesting length in seconds")

    @field_validator("beneficiary")
    @classmethod
    def _validate_beneficiary(cls, value: str) -> str:
        return _check_address(value)

    @field_validator("total_amount", "tge_amount", "cliff_duration", "vesting_duration", mode="before")
    @classmethod
    def _validate_uint(cls, value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValueError("Expected a decimal integer string")
        text = str(value).strip()
        if not _UINT_RE.fullmatch(text):
            raise ValueError("Expected a decimal integer string")
        if int(text) >= 2**256:
            raise ValueError("Value does not fit in uint256")
        return text


class VestingContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: VestingRecord = Field(description="Vesting record for the connected account")
    merkle_proof: List[str] = Field(
        default_factory=list,
        max_length=64,
        alias="merkleProof",
        description="Merkle proof (bytes32 hex list)",
    )

    @field_validator("merkle_proof")
    @classmethod
    def _validate_proof(cls, value: List[str]) -> List[str]:
        for node in value:
            if not _BYTES32_RE.fullmatch(node):
                raise ValueError("Merkle proof entries must be bytes32 hex")
        return value


class ChatContext(BaseModel):
    account: Optional[str] = Field(default=None, description="Connected wallet address")
    vesting: Optional[VestingContext] = Field(default=None, description="Vesting record and proof for claims")

    @field_validator("account")
    @classmethod
    def _validate_account(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_address(value)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1, max_length=50, description="Chat conversation history")
    context: Optional[ChatContext] = Field(default=None, description="Wallet context supplied by the client")

    @property
    def latest_user_message(self) -> str:
        """Content of the most recent user turn (the active utterance)."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""
