import asyncio
import pytest
from fastapi.testclient import TestClient
from app.config import RATE_LIMIT_SETTINGS
from app.utils.ratelimiter import InMemoryRateLimiter, client_ip


def _payload(i: int):
    return {
        "name": "Jane Doe",
        "email": f"jane{i}@x.com",
        "phone": "0891112222",
        "affiliateCode": f"JANE{i}",
        "pdpaConsent": True,
    }


def test_registration_limit_per_ip(client: TestClient):
    headers = {"X-Forwarded-For": "203.0.113.7"}
    for i in range(3):
        r = client.post("/api/register-affiliate", json=_payload(100 + i), headers=headers)
        assert r.status_code == 201, r.text
        assert r.headers.get("X-RateLimit-Limit") == "3"
        assert int(r.headers.get("X-RateLimit-Remaining")) == 3 - (i + 1)

    r = client.post("/api/register-affiliate", json=_payload(200), headers=headers)
    assert r.status_code == 429
    body = r.json()
    assert body["success"] is False
    assert body["retryAfter"] >= 1
    assert r.headers["Retry-After"] == str(body["retryAfter"])


def test_limit_is_keyed_by_client_ip(client: TestClient):
    for i in range(3):
        assert client.post("/api/register", json=_payload(300 + i), headers={"X-Forwarded-For": "198.51.100.1"}).status_code != 429
    assert client.post("/api/register", json=_payload(310), headers={"X-Forwarded-For": "198.51.100.1"}).status_code == 429
    assert client.post("/api/register", json=_payload(320), headers={"X-Forwarded-For": "198.51.100.2"}).status_code != 429


def test_other_endpoints_are_not_limited(client: TestClient):
    for _ in range(RATE_LIMIT_SETTINGS["registration"]["limit"] + 2):
        assert client.get("/api/check-affiliate", params={"affiliateCode": "FREE1"}).status_code == 200
    for i in range(RATE_LIMIT_SETTINGS["registration"]["limit"] + 1):
        r = client.post(
            "/api/register-affiliate-main",
            json={"name": "Jane", "email": f"m{i}@x.com", "tel": "0891112222", "generatedCode": f"MAIN{i}"},
        )
        assert r.status_code == 200


def test_window_reset(monkeypatch):
    limiter = InMemoryRateLimiter()
    clock = {"now": 1_000_040}
    monkeypatch.setattr(limiter, "_now", lambda: clock["now"])

    async def hit():
        return await limiter.check_and_increment("1.2.3.4", "registration", 3, 60)

    async def scenario():
        results = [await hit() for _ in range(4)]
        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert results[-1][1]["retry_after"] == 40
        clock["now"] += 60
        allowed, meta = await hit()
        assert allowed is True
        assert meta["count"] == 1

    asyncio.run(scenario())



def test_expired_buckets_are_purged(monkeypatch):
    limiter = InMemoryRateLimiter()
    clock = {"now": 1_000_000}
    monkeypatch.setattr(limiter, "_now", lambda: clock["now"])

    async def scenario():
        for i in range(1000):
            await limiter.check_and_increment(f"10.0.{i // 256}.{i % 256}", "registration", 3, 60)
        assert len(limiter._buckets) == 1000
        clock["now"] += 3600
        await limiter.check_and_increment("192.0.2.1", "registration", 3, 60)
        return len(limiter._buckets)

    assert asyncio.run(scenario()) == 1


def test_live_buckets_survive_purge(monkeypatch):
    limiter = InMemoryRateLimiter(purge_interval_seconds=0)
    clock = {"now": 1_000_000}
    monkeypatch.setattr(limiter, "_now", lambda: clock["now"])

    async def scenario():
        await limiter.check_and_increment("1.2.3.4", "registration", 3, 60)
        await limiter.check_and_increment("5.6.7.8", "registration", 3, 60)
        return len(limiter._buckets)

    assert asyncio.run(scenario()) == 2

@pytest.mark.parametrize(
    "headers,peer,expected",
    [
        ({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "10.0.0.2", "203.0.113.7"),
        ({"x-real-ip": "198.51.100.4"}, "10.0.0.2", "198.51.100.4"),
        ({}, "10.0.0.2", "10.0.0.2"),
        ({}, None, "unknown"),
    ],
)
def test_client_ip_resolution(headers, peer, expected):
    assert client_ip(headers, peer) == expected
