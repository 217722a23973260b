import time
from typing import List, Dict, Any, Optional, AsyncGenerator

import anthropic
from anthropic import AsyncAnthropic

from .base import (
    LLMProvider, LLMMessage, LLMResponse,
    LLMProviderError, LLMProviderAPIError, LLMProviderAuthError, LLMProviderRateLimitError,
)


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider.

    The Messages API has no JSON response mode; callers ask for JSON in the
    prompt and ``response_format`` is dropped here.
    """

    name = "anthropic"

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        if not model:
            raise ValueError("AnthropicProvider requires a model to be specified")

        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, **kwargs) -> None:
        """Initialize the Anthropic client"""
        timeout = kwargs.get("timeout")
        if timeout is not None:
            self.client = AsyncAnthropic(api_key=self.api_key, timeout=timeout)
        else:
            self.client = AsyncAnthropic(api_key=self.api_key)

    def _build_request(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int],
        temperature: Optional[float],
        extra: Dict[str, Any],
    ) -> Dict[str, Any]:
        system_parts = [m.content for m in messages if m.role == "system" and m.content]
        conversation = [
            {"role": m.role, "content": m.content or ""}
            for m in messages
            if m.role in ("user", "assistant")
        ]

        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": conversation,
            "max_tokens": max_tokens or 1024,
        }
        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)
        if temperature is not None:
            request_params["temperature"] = temperature

        extra.pop("response_format", None)
        request_params.update(extra)
        return request_params

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate a single response from Claude"""
        start_time = time.time()
        request_params = self._build_request(messages, max_tokens, temperature, kwargs)

        try:
            response = await self.client.messages.create(**request_params)
        except anthropic.AuthenticationError as e:
            raise LLMProviderAuthError(f"Authentication failed: {e}") from e
        except anthropic.RateLimitError as e:
            raise LLMProviderRateLimitError(f"Rate limit exceeded: {e}") from e
        except anthropic.APIError as e:
            raise LLMProviderAPIError(f"API error: {e}", status_code=getattr(e, "status_code", None)) from e

        if not response.content:
            raise LLMProviderError("Anthropic response had no content blocks")
        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        return self._create_response(
            content=content,
            started=start_time,
            tokens_used=response.usage.output_tokens if getattr(response, "usage", None) else None,
            finish_reason=getattr(response, "stop_reason", None),
        )

    async def generate_streaming_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        """Generate a streaming response from Claude"""
        request_params = self._build_request(messages, max_tokens, temperature, kwargs)

        try:
            async with self.client.messages.stream(**request_params) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.AuthenticationError as e:
            raise LLMProviderAuthError(f"Authentication failed: {e}") from e
        except anthropic.RateLimitError as e:
            raise LLMProviderRateLimitError(f"Rate limit exceeded: {e}") from e
        except anthropic.APIError as e:
            raise LLMProviderAPIError(f"API error: {e}", status_code=getattr(e, "status_code", None)) from e

    async def close(self) -> None:
        await self.client.close()
