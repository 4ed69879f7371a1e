import asyncio
import json

import httpx

from specguard.core.compliance_types import ComplianceVerdict
from specguard.rules import get_critical_rules
from specguard.services.event_client import EventAPIClient, TokenCache


class FakeEventAPI:
    """Records requests and answers like the Event API."""

    def __init__(self, expires_in=3600, event_status=201):
        self.expires_in = expires_in
        self.event_status = event_status
        self.token_requests = 0
        self.events = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            self.token_requests += 1
            return httpx.Response(200, json={
                "access_token": f"token-{self.token_requests}",
                "token_type": "Bearer",
                "expires_in": self.expires_in,
            })
        if request.url.path == "/api/events":
            self.events.append({
                "auth": request.headers.get("Authorization"),
                "body": json.loads(request.content),
            })
            return httpx.Response(self.event_status, text="" if self.event_status < 400 else "rejected")
        return httpx.Response(404)


class Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def _client(api, clock=None, base_url="https://events.example.com"):
    return EventAPIClient(
        base_url=base_url,
        client_id="cid",
        client_secret="secret",
        skew_seconds=60,
        transport=httpx.MockTransport(api.handler),
        clock=clock or Clock(),
    )


def _blocking_verdict():
    violation = get_critical_rules()[0].violation
    return ComplianceVerdict(
        overall_compliance="blocking-violations",
        violations=[violation],
        analyzed_frameworks=["PCI DSS"],
    )


def test_token_cache_freshness_policy():
    cache = TokenCache(access_token="t", token_type="Bearer", expires_at=1_100.0)
    assert cache.is_fresh(now=1_000.0, skew=60) is True
    assert cache.is_fresh(now=1_041.0, skew=60) is False


def test_compliance_check_event_payload():
    api = FakeEventAPI()
    client = _client(api)

    sent = asyncio.run(client.log_compliance_check("ws_1", "user_1", _blocking_verdict()))

    assert sent is True
    [event] = api.events
    assert event["auth"] == "Bearer token-1"
    body = event["body"]
    assert body["eventType"] == "compliance.check.completed"
    assert body["workspaceId"] == "ws_1"
    assert body["userId"] == "user_1"
    assert body["source"] == "swiftly-spec-generator"
    assert body["timestamp"]
    assert body["metadata"] == {
        "frameworks": ["PCI DSS"],
        "severity": "blocking-violations",
        "violationCount": 1,
        "hasBlockingViolations": True,
    }


def test_token_is_reused_until_within_skew():
    api = FakeEventAPI(expires_in=3600)
    clock = Clock()
    client = _client(api, clock=clock)

    asyncio.run(client.send_event({"eventType": "a"}))
    clock.now += 3000
    asyncio.run(client.send_event({"eventType": "b"}))
    assert api.token_requests == 1

    clock.now += 550  # 50s left, inside the 60s skew
    asyncio.run(client.send_event({"eventType": "c"}))
    assert api.token_requests == 2
    assert api.events[-1]["auth"] == "Bearer token-2"


def test_unconfigured_client_skips():
    api = FakeEventAPI()
    client = _client(api, base_url="")
    assert asyncio.run(client.send_event({"eventType": "a"})) is False
    assert api.token_requests == 0


def test_rejected_event_is_swallowed():
    api = FakeEventAPI(event_status=500)
    client = _client(api)
    assert asyncio.run(client.send_event({"eventType": "a"})) is False


def test_transport_failure_is_swallowed():
    def broken(request):
        raise httpx.ConnectError("refused", request=request)

    client = EventAPIClient(
        base_url="https://events.example.com",
        client_id="cid",
        client_secret="secret",
        transport=httpx.MockTransport(broken),
    )
    assert asyncio.run(client.send_event({"eventType": "a"})) is False
    assert client.token_cache is None


def test_supplied_token_cache_is_used_and_kept():
    api = FakeEventAPI()
    cache = TokenCache(access_token="preloaded", token_type="Bearer", expires_at=5_000.0)
    client = EventAPIClient(
        base_url="https://events.example.com",
        transport=httpx.MockTransport(api.handler),
        clock=Clock(1_000.0),
        token_cache=cache,
    )

    assert asyncio.run(client.send_event({"eventType": "a"})) is True
    assert api.token_requests == 0
    assert api.events[0]["auth"] == "Bearer preloaded"
    assert client.token_cache is cache


def test_stale_supplied_token_cache_is_replaced():
    api = FakeEventAPI()
    stale = TokenCache(access_token="old", token_type="Bearer", expires_at=1_030.0)
    client = EventAPIClient(
        base_url="https://events.example.com",
        transport=httpx.MockTransport(api.handler),
        clock=Clock(1_000.0),
        token_cache=stale,
    )

    asyncio.run(client.send_event({"eventType": "a"}))
    assert api.token_requests == 1
    assert client.token_cache.access_token == "token-1"
    assert client.token_cache.expires_at == 1_000.0 + 3600
