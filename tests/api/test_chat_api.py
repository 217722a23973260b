"""
HTTP tests for /chat, /chat/stream and /health.
"""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import MARKET, USDC, FakeProvider, make_settings
from uassistant.main import create_app

BUY_REPLY = {"actionType": "BUY_ASSET", "interpretation": "Buy MILANO", "userMessage": "Review below."}


def _client(provider=None, **overrides) -> TestClient:
    overrides.setdefault("stream_heartbeat_seconds", 5.0)
    settings = make_settings(**overrides)
    return TestClient(create_app(settings=settings, provider=provider or FakeProvider()))


def _body(text):
    return {"messages": [{"role": "user", "content": text}]}


def _events(text):
    events = []
    for frame in text.split("\n\n"):
        if not frame or frame.startswith(":"):
            continue
        name_line, data_line = frame.split("\n")
        events.append((name_line[len("event: "):], json.loads(data_line[len("data: "):])))
    return events


class TestHealth:

    def test_health(self):
        response = _client().get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_health_ignores_broken_registry(self):
        response = _client(ushare_offerings_json="[broken").get("/health")
        assert response.status_code == 200


class TestChat:

    def test_greeting(self):
        provider = FakeProvider()
        response = _client(provider).post("/chat", json=_body("hi"))

        assert response.status_code == 200
        data = response.json()
        assert data["actionType"] == "QUESTION"
        assert data["txs"] == []
        assert data["tx"] is None
        assert data["id"].startswith("plan_")
        assert provider.calls == []

    def test_buy(self):
        response = _client(FakeProvider(BUY_REPLY)).post("/chat", json=_body("buy 10 milano"))

        assert response.status_code == 200
        data = response.json()
        assert [tx["to"] for tx in data["txs"]] == [USDC, MARKET]
        assert data["tx"] == data["txs"][0]
        assert data["txs"][0]["chainId"] == 421614
        assert data["txs"][0]["data"].startswith("0x095ea7b3")

    def test_malformed_model_reply_still_answers(self):
        response = _client(FakeProvider("definitely not json")).post("/chat", json=_body("stake 100"))

        assert response.status_code == 200
        assert response.json()["actionType"] == "QUESTION"

    def test_claim_with_context(self):
        account = "0x" + "ab" * 20
        body = _body("claim my vesting")
        body["context"] = {
            "account": account,
            "vesting": {
                "data": {"beneficiary": account.upper().replace("0X", "0x"), "totalAmount": "1000"},
                "merkleProof": ["0x" + "aa" * 32],
            },
        }
        provider = FakeProvider({"actionType": "CLAIM_VESTING", "interpretation": "Claim", "userMessage": "ok"})

        response = _client(provider).post("/chat", json=body)

        assert response.status_code == 200
        assert len(response.json()["txs"]) == 1

    @pytest.mark.parametrize("body", [
        {"messages": []},
        {"messages": [{"role": "system", "content": "hi"}]},
        {"messages": [{"role": "user", "content": ""}]},
        {"messages": [{"role": "user", "content": "x" * 8001}]},
        {"messages": [{"role": "user", "content": "hi"}] * 51},
        {"messages": [{"role": "user", "content": "hi"}], "context": {"account": "0x123"}},
        {},
    ])
    def test_invalid_body_is_bad_request(self, body):
        response = _client().post("/chat", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "BAD_REQUEST"
        assert data["issues"]

    def test_non_json_body_is_bad_request(self):
        response = _client().post("/chat", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"] == "BAD_REQUEST"

    def test_invalid_offerings_config(self):
        response = _client(ushare_offerings_json="[broken").post("/chat", json=_body("buy 10 milano"))

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "CONFIG_ERROR"
        assert "USHARE_OFFERINGS_JSON" in data["message"]


class TestChatStream:

    def test_event_order(self):
        response = _client(FakeProvider(BUY_REPLY)).post("/chat/stream", json=_body("buy 10 milano"))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        assert "connection" not in response.headers

        events = _events(response.text)
        assert [name for name, _ in events] == ["ready", "plan", "done"]
        ready, plan, done = (payload for _, payload in events)
        assert ready["id"] == plan["id"] == done["id"]
        assert len(plan["txs"]) == 2

    def test_invalid_body_is_bad_request(self):
        response = _client().post("/chat/stream", json={"messages": []})

        assert response.status_code == 400
        assert response.json()["error"] == "BAD_REQUEST"

    def test_invalid_offerings_config(self):
        response = _client(ushare_offerings_json="{}").post("/chat/stream", json=_body("hi"))

        assert response.status_code == 500
        assert response.json()["error"] == "CONFIG_ERROR"
