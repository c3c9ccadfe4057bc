import asyncio

from gateway.auth.gate import AuthGate
from gateway.backends.base import BackendError


class _IdentityBackend:
    def __init__(self, users: dict[str, str] | None = None, error: bool = False) -> None:
        self.users = users or {}
        self.error = error
        self.calls: list[str] = []

    async def verify_token(self, token: str) -> str | None:
        self.calls.append(token)
        if self.error:
            raise BackendError("auth service unavailable", status_code=503)
        return self.users.get(token)


def test_missing_or_malformed_header_skips_backend() -> None:
    backend = _IdentityBackend({"abc": "user-1"})
    gate = AuthGate(backend)

    assert asyncio.run(gate.authenticate(None)) is None
    assert asyncio.run(gate.authenticate("")) is None
    assert asyncio.run(gate.authenticate("Basic abc")) is None
    assert asyncio.run(gate.authenticate("bearer abc")) is None
    assert backend.calls == []


def test_valid_token_returns_user_id() -> None:
    backend = _IdentityBackend({"abc": "user-1"})
    gate = AuthGate(backend)

    assert asyncio.run(gate.authenticate("Bearer abc")) == "user-1"
    assert backend.calls == ["abc"]


def test_unknown_token_returns_none() -> None:
    gate = AuthGate(_IdentityBackend({"abc": "user-1"}))
    assert asyncio.run(gate.authenticate("Bearer nope")) is None


def test_backend_error_returns_none() -> None:
    backend = _IdentityBackend(error=True)
    gate = AuthGate(backend)

    assert asyncio.run(gate.authenticate("Bearer abc")) is None
    assert backend.calls == ["abc"]
