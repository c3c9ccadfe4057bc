from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

DEFAULT_ORIGIN = "http://localhost:3000"
LOCAL_ORIGIN_PREFIXES = ("http://localhost:", "http://127.0.0.1:")


def cors_headers(origin: str | None, allowed_origins: list[str]) -> dict[str, str]:
    """Compute the CORS header set for a request origin."""
    is_local = origin is not None and origin.startswith(LOCAL_ORIGIN_PREFIXES)
    if origin and (origin in allowed_origins or is_local):
        allowed_origin = origin
    elif allowed_origins:
        allowed_origin = allowed_origins[0]
    else:
        allowed_origin = DEFAULT_ORIGIN
    return {
        "Access-Control-Allow-Origin": allowed_origin,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        headers = cors_headers(
            request.headers.get("origin"), request.app.state.settings.allowed_origin_list
        )
        request.state.cors_headers = headers

        if request.method == "OPTIONS":
            request_id = request.headers.get("x-request-id") or str(uuid4())
            return Response(status_code=200, headers={**headers, "x-request-id": request_id})

        response = await call_next(request)
        response.headers.update(headers)
        return response
