"""
Tests for the completion provider adapters and factory.
"""

import json

import httpx
import pytest

from conftest import make_settings
from uassistant.providers.llm import (
    AnthropicProvider,
    LLMMessage,
    LLMProviderAPIError,
    LLMProviderAuthError,
    LLMProviderRateLimitError,
    OpenAIProvider,
    get_llm_provider,
)

MESSAGES = [LLMMessage(role="system", content="plan"), LLMMessage(role="user", content="stake 5")]


def _openai(handler) -> OpenAIProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://llm.test/v1")
    return OpenAIProvider(api_key="k", model="gpt-4o-mini", client=client)


class TestOpenAIProvider:

    @pytest.mark.asyncio
    async def test_generate_response_sends_json_mode(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": '{"actionType": "STAKE"}'}, "finish_reason": "stop"}],
                "usage": {"total_tokens": 42},
            })

        provider = _openai(handler)
        response = await provider.generate_response(
            MESSAGES, max_tokens=100, temperature=0.1, response_format={"type": "json_object"}
        )
        await provider.close()

        assert response.content == '{"actionType": "STAKE"}'
        assert response.tokens_used == 42
        assert seen["path"] == "/v1/chat/completions"
        assert seen["payload"]["response_format"] == {"type": "json_object"}
        assert seen["payload"]["model"] == "gpt-4o-mini"
        assert seen["payload"]["messages"][0] == {"role": "system", "content": "plan"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [
        (401, LLMProviderAuthError),
        (429, LLMProviderRateLimitError),
        (500, LLMProviderAPIError),
    ])
    async def test_status_errors_are_mapped(self, status, error):
        provider = _openai(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(error):
            await provider.generate_response(MESSAGES)

    @pytest.mark.asyncio
    async def test_transport_error_is_mapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMProviderAPIError):
            await _openai(handler).generate_response(MESSAGES)

    @pytest.mark.asyncio
    async def test_streaming(self):
        body = (
            'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\n'
            ": keep-alive\n\n"
            'data: {"choices": [{"delta": {"content": "lo"}}]}\n\n'
            "data: [DONE]\n\n"
        )
        provider = _openai(lambda request: httpx.Response(200, text=body))

        chunks = [c async for c in provider.generate_streaming_response(MESSAGES)]

        assert "".join(chunks) == "Hello"


class TestAnthropicProvider:

    def test_response_format_is_dropped(self):
        provider = AnthropicProvider(api_key="k", model="claude-3-5-haiku-latest")

        request = provider._build_request(MESSAGES, 200, 0.1, {"response_format": {"type": "json_object"}})

        assert "response_format" not in request
        assert request["system"] == "plan"
        assert request["messages"] == [{"role": "user", "content": "stake 5"}]
        assert request["max_tokens"] == 200


class TestFactory:

    def test_missing_key_raises(self):
        with pytest.raises(ValueError):
            get_llm_provider(make_settings(llm_provider="openai", openai_api_key=""))

    def test_openai_from_settings(self):
        settings = make_settings(openai_api_key="sk-test", openai_base_url="https://gateway.test/v1/")
        provider = get_llm_provider(settings)

        assert isinstance(provider, OpenAIProvider)
        assert provider.base_url == "https://gateway.test/v1"
        assert provider.model == "gpt-4o-mini"

    def test_claude_alias(self):
        settings = make_settings(llm_provider="claude", anthropic_api_key="sk-ant", llm_model="claude-3-5-haiku-latest")
        assert isinstance(get_llm_provider(settings), AnthropicProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_llm_provider(make_settings(llm_provider="mystery", openai_api_key="x"))
