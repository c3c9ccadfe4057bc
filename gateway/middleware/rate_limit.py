import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from gateway.core.errors import app_error_response, request_id_from_request
from gateway.ratelimit.identity import resolve_client_identity
from gateway.ratelimit.limiter import RateLimitStore

logger = logging.getLogger("edge.ratelimit")


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_id = resolve_client_identity(request.headers)
        request.state.client_id = client_id

        limiter: RateLimitStore | None = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or limiter.admit(client_id):
            return await call_next(request)

        request_id = request_id_from_request(request)
        logger.warning(
            "rate_limited",
            extra={
                "request_id": request_id,
                "client_id": client_id,
                "method": request.method,
                "path": request.url.path,
            },
        )
        return app_error_response(
            429, "rate_limited", "rate_limit", "Rate limit exceeded", request_id
        )
