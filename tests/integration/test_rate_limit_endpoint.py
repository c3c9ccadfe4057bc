from fastapi.testclient import TestClient

from conftest import RecordingProvider
from gateway.backends.memory import InMemoryBackend
from gateway.config.settings import Settings
from gateway.main import create_app
from gateway.ratelimit.limiter import InMemoryRateLimiter


def test_hundred_and_first_request_is_rate_limited(client: TestClient) -> None:
    headers = {"X-Forwarded-For": "198.51.100.20"}
    for _ in range(100):
        assert client.get("/health", headers=headers).status_code == 200

    resp = client.get("/health", headers={**headers, "Origin": "http://localhost:3000"})

    assert resp.status_code == 429
    body = resp.json()
    assert body["error"] == "Rate limit exceeded"
    assert body["code"] == "rate_limited"
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_limit_is_per_client_identity(settings: Settings) -> None:
    limiter = InMemoryRateLimiter(max_requests=2, window_ms=60_000)
    client = TestClient(
        create_app(
            settings=settings,
            backend=InMemoryBackend(),
            provider=RecordingProvider(),
            rate_limiter=limiter,
        )
    )

    for _ in range(2):
        assert client.get("/health", headers={"CF-Connecting-IP": "192.0.2.1"}).status_code == 200
    assert client.get("/health", headers={"CF-Connecting-IP": "192.0.2.1"}).status_code == 429
    assert client.get("/health", headers={"CF-Connecting-IP": "192.0.2.2"}).status_code == 200


def test_requests_without_forwarding_headers_are_not_grouped(settings: Settings) -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_ms=60_000)
    client = TestClient(
        create_app(
            settings=settings,
            backend=InMemoryBackend(),
            provider=RecordingProvider(),
            rate_limiter=limiter,
        )
    )

    for _ in range(5):
        assert client.get("/health").status_code == 200


def test_rate_limited_chat_never_reaches_auth_or_provider(settings: Settings) -> None:
    provider = RecordingProvider()
    limiter = InMemoryRateLimiter(max_requests=1, window_ms=60_000)
    client = TestClient(
        create_app(
            settings=settings,
            backend=InMemoryBackend(tokens=settings.memory_auth_token_map),
            provider=provider,
            rate_limiter=limiter,
        )
    )
    headers = {"Authorization": "Bearer token-alice", "X-Forwarded-For": "198.51.100.30"}

    assert client.get("/health", headers=headers).status_code == 200
    resp = client.post("/chat", json={"message": "hello"}, headers=headers)

    assert resp.status_code == 429
    assert provider.call_count == 0


def test_disabled_rate_limiting_admits_everything(
    monkeypatch, backend: InMemoryBackend
) -> None:
    monkeypatch.setenv("EDGE_RATE_LIMIT_ENABLED", "false")
    monkeypatch.setenv("EDGE_RATE_LIMIT_MAX_REQUESTS", "1")
    client = TestClient(
        create_app(settings=Settings(), backend=backend, provider=RecordingProvider())
    )

    for _ in range(3):
        assert client.get("/health", headers={"X-Forwarded-For": "198.51.100.40"}).status_code == 200


class _Clock:
    def __init__(self) -> None:
        self.now = 5000.0

    def __call__(self) -> float:
        return self.now


def test_anonymous_traffic_does_not_accumulate_limiter_state(settings: Settings) -> None:
    clock = _Clock()
    limiter = InMemoryRateLimiter(max_requests=100, window_ms=60_000, clock=clock)
    client = TestClient(
        create_app(
            settings=settings,
            backend=InMemoryBackend(),
            provider=RecordingProvider(),
            rate_limiter=limiter,
        )
    )

    for _ in range(500):
        assert client.get("/health").status_code == 200
    clock.now += 3600
    for _ in range(5):
        assert client.get("/health", headers={"X-Forwarded-For": "198.51.100.50"}).status_code == 200

    assert limiter.identity_count == 1
