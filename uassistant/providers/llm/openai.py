"""
OpenAI chat completions over ``httpx``.

Any gateway that speaks the ``/chat/completions`` wire format works by
pointing ``base_url`` at it. JSON mode is requested with
``response_format={"type": "json_object"}``.
"""

import json
import time
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from .base import (
    LLMMessage,
    LLMProvider,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderError,
    LLMProviderRateLimitError,
    LLMResponse,
)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
COMPLETIONS_PATH = "/chat/completions"
SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


def _message_text(content: Any) -> str:
    """Flatten ``content`` that may arrive as a string or a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return str(content)


class OpenAIProvider(LLMProvider):
    """Completion provider for OpenAI and compatible gateways.

    Usage:
        provider = OpenAIProvider(api_key, "gpt-4o-mini")
        reply = await provider.generate_response(messages, response_format={"type": "json_object"})
    """

    name = "openai"
    supports_json_mode = True

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        **kwargs: Any,
    ) -> None:
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        super().__init__(api_key, model, **kwargs)

    def _setup_client(self, client: Optional[httpx.AsyncClient] = None, **kwargs: Any) -> None:
        # An injected client (tests, shared pools) is used as-is
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    def _payload(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int],
        temperature: Optional[float],
        options: Dict[str, Any],
        stream: bool = False,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content or ""} for m in messages],
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if temperature is not None:
            payload["temperature"] = temperature
        payload.update({key: value for key, value in options.items() if value is not None})
        if stream:
            payload["stream"] = True
        return payload

    @staticmethod
    def _error_for(response: httpx.Response) -> LLMProviderError:
        status = response.status_code
        detail = response.text[:500]
        if status in (401, 403):
            return LLMProviderAuthError(f"OpenAI rejected the API key ({status})")
        if status == 429:
            return LLMProviderRateLimitError("OpenAI rate limit exceeded")
        return LLMProviderAPIError(f"OpenAI API error ({status}): {detail}", status_code=status)

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        started = time.time()
        payload = self._payload(messages, max_tokens, temperature, kwargs)

        try:
            response = await self._client.post(COMPLETIONS_PATH, json=payload)
        except httpx.RequestError as exc:
            raise LLMProviderAPIError(f"OpenAI request failed: {exc}") from exc

        if response.is_error:
            raise self._error_for(response)

        try:
            body = response.json()
        except ValueError as exc:
            raise LLMProviderAPIError("OpenAI returned a non-JSON body") from exc

        choices = body.get("choices") or []
        if not choices:
            raise LLMProviderAPIError("OpenAI response had no choices")

        first = choices[0]
        return self._create_response(
            content=_message_text((first.get("message") or {}).get("content")),
            started=started,
            tokens_used=(body.get("usage") or {}).get("total_tokens"),
            finish_reason=first.get("finish_reason"),
        )

    async def generate_streaming_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs: Any,
    ) -> AsyncGenerator[str, None]:
        payload = self._payload(messages, max_tokens, temperature, kwargs, stream=True)

        try:
            async with self._client.stream("POST", COMPLETIONS_PATH, json=payload) as response:
                if response.is_error:
                    await response.aread()
                    raise self._error_for(response)

                async for line in response.aiter_lines():
                    if not line.startswith(SSE_DATA_PREFIX):
                        continue
                    data = line[len(SSE_DATA_PREFIX):].strip()
                    if data == SSE_DONE:
                        return
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        self.logger.debug("Skipping malformed stream chunk: %s", data[:80])
                        continue
                    for choice in chunk.get("choices") or []:
                        text = _message_text((choice.get("delta") or {}).get("content"))
                        if text:
                            yield text
        except httpx.RequestError as exc:
            raise LLMProviderAPIError(f"OpenAI stream failed: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()
