import pytest
from fastapi.testclient import TestClient

from gateway.backends.memory import InMemoryBackend
from gateway.config.settings import Settings, clear_settings_cache
from gateway.main import create_app
from gateway.providers.stub import StubProvider
from gateway.sessions.models import MESSAGES_TABLE, SESSIONS_TABLE

TEST_EMBEDDING_DIM = 64


class RecordingProvider(StubProvider):
    """Stub provider that remembers every call it receives."""

    def __init__(self, embedding_dim: int = TEST_EMBEDDING_DIM):
        super().__init__(embedding_dim=embedding_dim)
        self.embed_calls: list[tuple[str, str]] = []
        self.chat_calls: list[dict[str, object]] = []

    async def embed(self, model: str, text: str) -> list[float]:
        self.embed_calls.append((model, text))
        return await super().embed(model, text)

    async def chat(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict[str, object]:
        self.chat_calls.append(
            {
                "model": model,
                "messages": [dict(message) for message in messages],
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        return await super().chat(model, messages, max_tokens, temperature)

    @property
    def call_count(self) -> int:
        return len(self.embed_calls) + len(self.chat_calls)


class RecordingBackend(InMemoryBackend):
    """Memory backend that remembers every RPC it serves."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rpc_calls: list[tuple[str, dict[str, object]]] = []

    async def call_rpc(self, name: str, params: dict[str, object]):
        self.rpc_calls.append((name, dict(params)))
        return await super().call_rpc(name, params)


class FailingInsertBackend(InMemoryBackend):
    """Memory backend whose message inserts always fail."""

    async def insert_rows(self, table: str, rows: list[dict[str, object]]):
        if table == MESSAGES_TABLE:
            raise RuntimeError("message insert failed")
        return await super().insert_rows(table, rows)


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("EDGE_BACKEND", "memory")
    monkeypatch.setenv("EDGE_PROVIDER", "stub")
    monkeypatch.setenv("EDGE_EMBEDDING_DIM", str(TEST_EMBEDDING_DIM))
    monkeypatch.setenv("EDGE_MEMORY_AUTH_TOKENS", "token-alice:user-alice,token-bob:user-bob")
    clear_settings_cache()
    return Settings()


@pytest.fixture
def backend(settings: Settings) -> RecordingBackend:
    return RecordingBackend(tokens=settings.memory_auth_token_map)


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def client(settings: Settings, backend: InMemoryBackend, provider: RecordingProvider) -> TestClient:
    app = create_app(settings=settings, backend=backend, provider=provider)
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-alice", "X-Forwarded-For": "203.0.113.7"}


@pytest.fixture
def other_auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer token-bob", "X-Forwarded-For": "203.0.113.8"}


def session_rows(backend: InMemoryBackend) -> list[dict[str, object]]:
    return backend.rows(SESSIONS_TABLE)


def message_rows(backend: InMemoryBackend) -> list[dict[str, object]]:
    return backend.rows(MESSAGES_TABLE)
