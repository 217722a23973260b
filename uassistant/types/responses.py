from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransactionPreview(BaseModel):
    """Unsigned contract call, ready for client-side signing."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    chain_id: int = Field(alias="chainId", description="EVM chain id")
    to: str = Field(description="Target contract address")
    data: str = Field(description="ABI-encoded calldata (0x-prefixed hex)")
    value: str = Field(default="0", description="Native value in wei (decimal string)")


class AssistantPlan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(description="Opaque plan identifier")
    action_type: str = Field(alias="actionType", description="Resolved action type")
    interpretation: str = Field(description="Short description of what the assistant understood")
    user_message: str = Field(alias="userMessage", description="Message to show the user")
    warnings: List[str] = Field(default_factory=list, description="Warnings and notes")
    txs: List[TransactionPreview] = Field(default_factory=list, description="Ordered transaction previews")
    tx: Optional[TransactionPreview] = Field(default=None, description="First transaction (compatibility field)")
    docs_url: Optional[str] = Field(default=None, alias="docsUrl", description="Documentation link")
    support_email: Optional[str] = Field(default=None, alias="supportEmail", description="Support contact")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ErrorResponse(BaseModel):
    error: str = Field(description="Machine readable error code")
    message: Optional[str] = Field(default=None, description="Human readable explanation")
    issues: Optional[List[Any]] = Field(default=None, description="Validation issues")
