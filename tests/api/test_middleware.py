"""
HTTP tests for the API key gate, rate limiting and CORS.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider, make_settings
from uassistant.main import create_app
from uassistant.middleware import RateLimitExceeded, SlidingWindowLimiter

BODY = {"messages": [{"role": "user", "content": "hi"}]}


def _client(**overrides) -> TestClient:
    return TestClient(create_app(settings=make_settings(**overrides), provider=FakeProvider()))


class TestApiKey:

    def test_missing_key_is_rejected(self):
        response = _client(uassistant_api_key="s3cret").post("/chat", json=BODY)
        assert response.status_code == 401
        assert response.json() == {"error": "UNAUTHORIZED"}

    def test_wrong_key_is_rejected(self):
        response = _client(uassistant_api_key="s3cret").post("/chat", json=BODY, headers={"x-api-key": "nope"})
        assert response.status_code == 401

    def test_x_api_key_header(self):
        response = _client(uassistant_api_key="s3cret").post("/chat", json=BODY, headers={"x-api-key": "s3cret"})
        assert response.status_code == 200

    def test_bearer_token(self):
        client = _client(uassistant_api_key="s3cret")
        response = client.post("/chat/stream", json=BODY, headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200

    def test_health_is_open(self):
        assert _client(uassistant_api_key="s3cret").get("/health").status_code == 200

    def test_open_in_development_without_key(self):
        assert _client().post("/chat", json=BODY).status_code == 200

    def test_production_without_key_is_misconfigured(self):
        response = _client(environment="production").post("/chat", json=BODY)
        assert response.status_code == 500
        assert response.json() == {"error": "SERVER_MISCONFIGURED"}


class TestRateLimit:

    def test_limit_and_retry_after(self):
        client = _client(rate_limit_max=2, rate_limit_window_seconds=60)

        assert client.post("/chat", json=BODY).status_code == 200
        assert client.post("/chat", json=BODY).status_code == 200
        response = client.post("/chat", json=BODY)

        assert response.status_code == 429
        assert response.json()["error"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) >= 1

    def test_forwarded_header_does_not_reset_the_limit(self):
        client = _client(rate_limit_max=2)

        statuses = [
            client.post("/chat", json=BODY, headers={"x-forwarded-for": f"203.0.113.{i}"}).status_code
            for i in range(5)
        ]

        assert statuses == [200, 200, 429, 429, 429]

    def test_forwarded_header_used_behind_trusted_proxy(self):
        client = _client(rate_limit_max=1, rate_limit_trust_forwarded=True)

        assert client.post("/chat", json=BODY, headers={"x-forwarded-for": "203.0.113.1"}).status_code == 200
        assert client.post("/chat", json=BODY, headers={"x-forwarded-for": "203.0.113.2, 10.0.0.1"}).status_code == 200
        assert client.post("/chat", json=BODY, headers={"x-forwarded-for": "203.0.113.1"}).status_code == 429

    def test_health_is_exempt(self):
        client = _client(rate_limit_max=1)
        for _ in range(5):
            assert client.get("/health").status_code == 200

    def test_sliding_window_expires(self):
        limiter = SlidingWindowLimiter(limit=2, window_seconds=10)
        limiter.check("a", now=0.0)
        limiter.check("a", now=1.0)
        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check("a", now=5.0)
        assert exc_info.value.retry_after == 6

        limiter.check("a", now=10.5)
        limiter.check("b", now=10.5)
        assert limiter.remaining("a") == 0

    def test_idle_keys_are_dropped(self):
        limiter = SlidingWindowLimiter(limit=5, window_seconds=10)
        for i in range(50):
            limiter.check(f"client-{i}", now=1.0)
        assert len(limiter) == 50

        limiter.check("fresh", now=12.0)

        assert len(limiter) == 1
        assert limiter.remaining("client-0") == 5


class TestCors:

    def test_allowed_origin_preflight(self):
        client = _client(cors_origin="https://app.urano.test, https://staging.urano.test")
        response = client.options(
            "/chat",
            headers={
                "Origin": "https://staging.urano.test",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type,x-api-key",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://staging.urano.test"

    def test_unknown_origin_gets_no_cors_header(self):
        client = _client(cors_origin="https://app.urano.test")
        response = client.get("/health", headers={"Origin": "https://evil.test"})
        assert "access-control-allow-origin" not in response.headers
