"""Shared fixtures: deterministic settings and a scripted completion provider."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Union

import pytest

from uassistant.config import Settings
from uassistant.providers.llm import LLMMessage, LLMProvider, LLMResponse

STAKING = "0x1111111111111111111111111111111111111111"
GOVERNANCE = "0x2222222222222222222222222222222222222222"
MARKET = "0x3333333333333333333333333333333333333333"
VESTING = "0x4444444444444444444444444444444444444444"
USDC = "0x5555555555555555555555555555555555555555"
MILANO_TOKEN = "0x6666666666666666666666666666666666666666"
ROMA_TOKEN = "0x7777777777777777777777777777777777777777"

MILANO_ID = "0x" + "11" * 32
ROMA_ID = "0x" + "22" * 32

MILANO = {"name": "Milano Condo", "symbol": "MILANO", "id": MILANO_ID, "tokenContract": MILANO_TOKEN}
ROMA = {"name": "Roma Loft", "symbol": "ROMA", "id": ROMA_ID, "tokenContract": ROMA_TOKEN, "decimals": 6}


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the local ``.env`` with every contract configured."""
    values: Dict[str, Any] = {
        "environment": "test",
        "openai_api_key": "",
        "anthropic_api_key": "",
        "uassistant_api_key": "",
        "cors_origin": "",
        "chain_id": 421614,
        "urano_staking": STAKING,
        "urano_governance": GOVERNANCE,
        "ushare_market": MARKET,
        "vesting_address": VESTING,
        "usdc": USDC,
        "urano_decimals": 18,
        "ushare_decimals": 18,
        "market_supports_sell": False,
        "ushare_offerings_json": json.dumps([MILANO, ROMA]),
        "ushare_id": None,
        "ushare_token": None,
        "docs_url": "https://docs.urano.test",
        "support_email": "support@urano.test",
        "llm_timeout_seconds": 1.0,
        "stream_heartbeat_seconds": 0.05,
        "rate_limit_max": 1000,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeProvider(LLMProvider):
    """Completion provider that replays scripted replies and records calls.

    A reply may be a string (returned as content), a dict (JSON-encoded) or an
    exception instance (raised).
    """

    name = "fake"

    def __init__(self, *replies: Union[str, Dict[str, Any], BaseException], delay: float = 0.0):
        self.replies: List[Union[str, Dict[str, Any], BaseException]] = list(replies)
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.closed = False
        super().__init__(api_key="test-key", model="fake-model")

    def _setup_client(self, **kwargs: Any) -> None:
        return None

    async def generate_response(
        self,
        messages: List[LLMMessage],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            **kwargs,
        })
        if self.delay:
            await asyncio.sleep(self.delay)

        reply = self.replies.pop(0) if self.replies else "{}"
        if isinstance(reply, BaseException):
            raise reply
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return LLMResponse(content=content, model=self.model)

    async def generate_streaming_response(self, messages, max_tokens=None, temperature=None, **kwargs):
        response = await self.generate_response(messages, max_tokens, temperature, **kwargs)
        yield response.content

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return make_settings()
