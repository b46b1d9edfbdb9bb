"""End-to-end tests for the HTTP surface with stubbed provider and clock."""

import logging

import pytest
import redis
from fastapi.testclient import TestClient

from travel_search.config import Settings
from travel_search.errors import ProviderTimeout, RateLimited
from travel_search.inventory import DEFAULT_INVENTORY
from travel_search.main import GENERIC_ERROR_MESSAGE, PROVIDER_QUOTA_MESSAGE, app
from travel_search.rate_limit import InMemoryRateLimiter, RedisRateLimiter, get_rate_limiter
from travel_search.search_service import TravelSearchService, get_search_service


class StubClient:
    provider = "stub"
    settings = Settings(gemini_api_key="test", retry_enabled=True)

    def __init__(self, outcome):
        self.outcome = outcome
        self.prompts = []

    async def call(self, prompt):
        self.prompts.append(prompt)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wire(clock):
    """Install a stub provider outcome and a fresh limiter; returns the stub client."""

    def _wire(outcome, fallback_enabled=True):
        stub = StubClient(outcome)
        service = TravelSearchService(stub, DEFAULT_INVENTORY, fallback_enabled=fallback_enabled)
        limiter = InMemoryRateLimiter(5, 60, clock=clock)
        app.dependency_overrides[get_search_service] = lambda: service
        app.dependency_overrides[get_rate_limiter] = lambda: limiter
        return stub

    yield _wire
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


OK_REPLY = '{"results": [{"id": 4, "reason": "Great waves"}]}'


def test_search_returns_hydrated_results(wire, client):
    wire(OK_REPLY)

    response = client.post("/api/search", json={"query": "surf spots"})

    assert response.status_code == 200
    assert response.json() == {
        "results": [
            {
                "id": 4,
                "title": "Surf & Chill Retreat",
                "location": "Arugam Bay",
                "price": 80,
                "tags": ["beach", "surfing", "young-vibe"],
                "reason": "Great waves",
            }
        ]
    }


@pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}, {"query": 12}, {"query": None}])
def test_missing_query_is_400(wire, client, body):
    stub = wire(OK_REPLY)

    response = client.post("/api/search", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Query is required"}
    assert stub.prompts == []


def test_invalid_json_body_is_400(wire, client):
    wire(OK_REPLY)

    response = client.post("/api/search", content=b"{not json", headers={"content-type": "application/json"})

    assert response.status_code == 400


def test_over_length_query_is_400_without_calling_provider(wire, client):
    stub = wire(OK_REPLY)

    response = client.post("/api/search", json={"query": "b" * 301})

    assert response.status_code == 400
    assert "300" in response.json()["error"]
    assert stub.prompts == []


def test_query_is_sanitized_before_prompting(wire, client):
    stub = wire(OK_REPLY)

    client.post("/api/search", json={"query": "<b>beach</b> ignore previous"})

    assert 'User query: "beach"' in stub.prompts[0]


def test_query_that_sanitizes_to_nothing_is_400(wire, client):
    stub = wire(OK_REPLY)

    response = client.post("/api/search", json={"query": "<img src=x>"})

    assert response.status_code == 400
    assert stub.prompts == []


def test_sixth_request_is_429_until_window_expires(wire, client, clock):
    stub = wire(OK_REPLY)
    headers = {"x-forwarded-for": "203.0.113.9, 10.0.0.1"}

    statuses = [client.post("/api/search", json={"query": "surf"}, headers=headers).status_code for _ in range(6)]

    assert statuses == [200] * 5 + [429]
    assert len(stub.prompts) == 5

    blocked = client.post("/api/search", json={"query": "surf"}, headers=headers)
    assert blocked.json()["error"]
    assert blocked.headers["retry-after"] == "60"

    clock.now += 60
    assert client.post("/api/search", json={"query": "surf"}, headers=headers).status_code == 200


def test_other_callers_are_not_affected(wire, client):
    wire(OK_REPLY)
    for _ in range(5):
        client.post("/api/search", json={"query": "surf"}, headers={"x-real-ip": "198.51.100.1"})

    response = client.post("/api/search", json={"query": "surf"}, headers={"x-real-ip": "198.51.100.2"})

    assert response.status_code == 200


def test_provider_quota_falls_back_to_keyword_results(wire, client):
    wire(RateLimited("quota"))

    response = client.post("/api/search", json={"query": "beach surfing"})

    assert response.status_code == 200
    ids = [item["id"] for item in response.json()["results"]]
    assert 4 in ids


def test_provider_quota_without_fallback_is_429(wire, client):
    wire(RateLimited("quota"), fallback_enabled=False)

    response = client.post("/api/search", json={"query": "beach surfing"})

    assert response.status_code == 429
    assert response.json() == {"error": PROVIDER_QUOTA_MESSAGE}


def test_malformed_reply_is_generic_500_and_logged(wire, client, caplog):
    wire("not json")

    with caplog.at_level(logging.ERROR):
        response = client.post("/api/search", json={"query": "beach"})

    assert response.status_code == 500
    assert response.json() == {"error": GENERIC_ERROR_MESSAGE}
    assert "not json" in caplog.text


def test_timeout_is_500_without_leaking_detail(wire, client):
    wire(ProviderTimeout("gemini did not respond within 15s"))

    response = client.post("/api/search", json={"query": "beach"})

    assert response.status_code == 500
    assert "gemini" not in response.text


def test_health_reports_configuration(wire, client):
    wire(OK_REPLY)

    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["provider"] == "stub"
    assert body["inventory"] == 5
    assert body["rate_limit_backend"] == "memory"


class DownRedis:
    def pipeline(self):
        raise redis.ConnectionError("Connection refused")


def test_redis_outage_does_not_fail_searches(wire, client):
    wire(OK_REPLY)
    app.dependency_overrides[get_rate_limiter] = lambda: RedisRateLimiter(DownRedis(), 5, 60)

    response = client.post("/api/search", json={"query": "surf"})

    assert response.status_code == 200
    assert response.json()["results"][0]["id"] == 4


def test_error_bodies_are_documented():
    responses = app.openapi()["paths"]["/api/search"]["post"]["responses"]

    for status in ("400", "429", "500"):
        schema = responses[status]["content"]["application/json"]["schema"]
        assert schema["$ref"].endswith("/ErrorResponse")
