import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from gateway.core.errors import app_error_response, request_id_from_request

logger = logging.getLogger("edge.http")


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn any exception escaping the routes into a JSON 500."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = request_id_from_request(request)
            logger.exception(
                "unhandled_error",
                extra={
                    "request_id": request_id,
                    "client_id": getattr(request.state, "client_id", None),
                    "user_id": getattr(request.state, "user_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": 500,
                },
            )
            return app_error_response(
                500,
                "internal_error",
                "upstream",
                "Internal server error",
                request_id,
                message=str(exc) or type(exc).__name__,
            )
