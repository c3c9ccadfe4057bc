import logging

from fastapi import Request

from gateway.backends.base import BackendError, IdentityBackend
from gateway.core.errors import AppError, request_id_from_request

logger = logging.getLogger("edge.auth")

BEARER_PREFIX = "Bearer "


class AuthGate:
    def __init__(self, identity_backend: IdentityBackend):
        self._identity_backend = identity_backend

    async def authenticate(self, authorization: str | None) -> str | None:
        """Return the user id behind a ``Bearer`` credential, or None."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None

        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            return None

        try:
            user_id = await self._identity_backend.verify_token(token)
        except BackendError as exc:
            logger.warning("token_verification_failed", extra={"reason": exc.message})
            return None
        return user_id or None


async def require_user(request: Request) -> str:
    """Route dependency: raise 401 unless the bearer token maps to a user."""
    gate: AuthGate = request.app.state.auth_gate
    authorization = request.headers.get("authorization")
    user_id = await gate.authenticate(authorization)
    if user_id is None:
        code = (
            "auth_missing"
            if not authorization or not authorization.startswith(BEARER_PREFIX)
            else "auth_invalid"
        )
        logger.warning(
            "authentication_failed",
            extra={
                "request_id": request_id_from_request(request),
                "client_id": getattr(request.state, "client_id", None),
                "path": request.url.path,
                "reason": code,
            },
        )
        raise AppError(401, code, "auth", "Unauthorized")

    request.state.user_id = user_id
    return user_id


async def require_user_if_protected(request: Request) -> str | None:
    """Authenticate only when the path is listed in the protected paths."""
    if request.url.path not in request.app.state.settings.protected_path_set:
        return None
    return await require_user(request)
