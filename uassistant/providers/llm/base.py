"""
Completion provider contract used by the intent planner.

The planner only needs one non-streaming completion per request, asked for as
a single JSON object. Providers that cannot enforce JSON output
(``supports_json_mode = False``) ignore ``response_format`` and rely on the
prompt instead.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, List, Literal, Optional

from pydantic import BaseModel


class LLMMessage(BaseModel):
    """One chat turn sent to a provider."""
    role: Literal["system", "user", "assistant"]
    content: Optional[str] = None


class LLMResponse(BaseModel):
    """Provider-neutral completion result."""
    content: Optional[str] = None
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    finish_reason: Optional[str] = None
    response_time_ms: Optional[float] = None


class LLMProvider(ABC):
    """Base class for completion providers.

    Subclasses build their SDK or HTTP client in ``_setup_client`` and map
    every transport failure onto the ``LLMProviderError`` hierarchy below.
    """

    name: str = "base"
    supports_json_mode: bool = False

    def __init__(self, api_key: str, model: str, **kwargs: Any):
        self.api_key = api_key
        self.model = model
        self.logger = logging.getLogger(f"uassistant.providers.{self.name}")
        self._setup_client(**kwargs)

    @abstractmethod
    def _setup_client(self, **kwargs: Any) -> None:
        ...

    @abstractmethod
    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Return a single completion for ``messages``.

        Extra keyword arguments (e.g. ``response_format``) are forwarded to
        the provider when it understands them.

        Raises:
            LLMProviderError: on authentication, rate limit or transport failure.
        """

    @abstractmethod
    def generate_streaming_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs: Any,
    ) -> AsyncGenerator[str, None]:
        """Yield completion text deltas as they arrive."""

    async def close(self) -> None:
        return None

    def _create_response(self, content: str, started: float, **metadata: Any) -> LLMResponse:
        return LLMResponse(
            content=content,
            model=self.model,
            response_time_ms=round((time.time() - started) * 1000, 1),
            **metadata,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model!r})"


class LLMProviderError(Exception):
    """Base class for provider failures; the planner degrades on any of them."""


class LLMProviderRateLimitError(LLMProviderError):
    """The provider rejected the call with a rate limit (HTTP 429)."""


class LLMProviderAuthError(LLMProviderError):
    """The API key was missing, invalid or lacks access to the model."""


class LLMProviderAPIError(LLMProviderError):
    """Any other provider-side or transport failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
