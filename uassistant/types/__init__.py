from .requests import ChatContext, ChatMessage, ChatRequest, VestingContext, VestingRecord
from .responses import AssistantPlan, ErrorResponse, TransactionPreview

__all__ = [
    "ChatContext",
    "ChatMessage",
    "ChatRequest",
    "VestingContext",
    "VestingRecord",
    "AssistantPlan",
    "ErrorResponse",
    "TransactionPreview",
]
