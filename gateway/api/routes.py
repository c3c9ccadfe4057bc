from datetime import UTC, datetime
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError

from gateway.auth.gate import require_user, require_user_if_protected
from gateway.core.errors import AppError, request_id_from_request
from gateway.models.api import (
    ChatRequest,
    ChatResponse,
    EmbedRequest,
    EmbedResponse,
    SearchRequest,
    SearchResponse,
)
from gateway.services.chat_service import ChatService
from gateway.validation.input import validate_chat_input

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)


async def _read_json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as exc:
        raise AppError(400, "invalid_json", "validation", "Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise AppError(400, "invalid_json", "validation", "Invalid JSON body")
    return body


def _parse(model: type[ModelT], body: dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        errors = exc.errors()
        field = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else "request"
        raise AppError(
            400, "request_validation_failed", "validation", f"Invalid {field}"
        ) from exc


def _require_text_field(body: dict[str, Any], field: str, error: str) -> None:
    value = body.get(field)
    if not value or not isinstance(value, str):
        raise AppError(400, "invalid_input", "validation", error)


@router.get("/")
def root(request: Request) -> dict[str, object]:
    return {
        "message": "Edge RAG gateway is running",
        "version": request.app.state.settings.app_version,
        "endpoints": {
            "health": "GET /health",
            "debug": "GET /debug",
            "embed": "POST /embed",
            "search": "POST /search",
            "chat": "POST /chat",
        },
    }


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug")
def debug(request: Request) -> dict[str, object]:
    return {
        "status": "ok",
        "environment": request.app.state.settings.env,
        "timestamp": datetime.now(UTC).isoformat(),
        "origin": request.headers.get("origin") or "unknown",
        "method": request.method,
        "pathname": request.url.path,
        "corsHeaders": getattr(request.state, "cors_headers", {}),
    }


@router.post("/embed", response_model=EmbedResponse)
async def embed(
    request: Request, _user_id: str | None = Depends(require_user_if_protected)
) -> EmbedResponse:
    body = await _read_json_object(request)
    _require_text_field(body, "text", "Text is required")
    payload = _parse(EmbedRequest, body)

    service: ChatService = request.app.state.chat_service
    return await service.handle_embed(payload)


@router.post("/search", response_model=SearchResponse, response_model_exclude_none=True)
async def search(
    request: Request, _user_id: str | None = Depends(require_user_if_protected)
) -> SearchResponse:
    body = await _read_json_object(request)
    _require_text_field(body, "query", "Query is required")
    payload = _parse(SearchRequest, body)

    service: ChatService = request.app.state.chat_service
    return await service.handle_search(payload, request_id=request_id_from_request(request))


@router.post("/chat", response_model=ChatResponse)
async def chat(request: Request, user_id: str = Depends(require_user)) -> ChatResponse:
    body = await _read_json_object(request)
    validation = validate_chat_input(
        body, max_length=request.app.state.settings.message_max_length
    )
    if not validation.valid:
        raise AppError(400, "invalid_input", "validation", validation.error or "Invalid input")
    payload = _parse(ChatRequest, body)

    service: ChatService = request.app.state.chat_service
    return await service.handle_chat(
        user_id, payload, request_id=request_id_from_request(request)
    )
