import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.api.routes import router
from gateway.auth.gate import AuthGate
from gateway.backends.memory import InMemoryBackend
from gateway.backends.supabase import SupabaseBackend
from gateway.config.settings import Settings, get_settings
from gateway.core.errors import AppError, app_error_response, request_id_from_request
from gateway.core.logging import configure_logging
from gateway.middleware.cors import CORSHeadersMiddleware
from gateway.middleware.errors import UnhandledErrorMiddleware
from gateway.middleware.rate_limit import RateLimitMiddleware
from gateway.middleware.request_id import RequestIDMiddleware
from gateway.providers.base import LLMProvider
from gateway.providers.http_openai import HTTPOpenAIProvider
from gateway.providers.stub import StubProvider
from gateway.rag.embeddings import HashEmbeddingGenerator
from gateway.rag.retrieval import RetrievalOrchestrator
from gateway.ratelimit.limiter import InMemoryRateLimiter, RateLimitStore, RedisRateLimiter
from gateway.services.chat_service import ChatService
from gateway.services.completion import CompletionAssembler
from gateway.services.persistence import PersistenceWriter
from gateway.sessions.manager import SessionManager, SessionNotFoundError

logger = logging.getLogger("edge.http")

HTTP_ERROR_LABELS = {
    404: ("not_found", "Not found"),
    405: ("method_not_allowed", "Method not allowed"),
}


def _build_backend(settings: Settings) -> InMemoryBackend | SupabaseBackend:
    kind = settings.backend_normalized
    if kind == "memory":
        backend = InMemoryBackend(
            tokens=settings.memory_auth_token_map,
            search_rpc_name=settings.search_rpc_name,
        )
        if settings.memory_documents_path:
            seeded = backend.load_documents(
                settings.memory_documents_path,
                HashEmbeddingGenerator(embedding_dim=settings.embedding_dim),
            )
            logger.info("memory_documents_loaded", extra={"document_count": seeded})
        return backend
    if kind == "supabase":
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "EDGE_SUPABASE_URL and EDGE_SUPABASE_SERVICE_ROLE_KEY are required "
                "when backend=supabase"
            )
        return SupabaseBackend(
            base_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            timeout_s=settings.supabase_timeout_s,
        )
    raise RuntimeError(f"Unsupported EDGE_BACKEND value: {kind}")


def _build_provider(settings: Settings) -> LLMProvider:
    kind = settings.provider_normalized
    if kind == "stub":
        return StubProvider(embedding_dim=settings.embedding_dim)
    if kind in {"openai", "openai_compatible"}:
        if not settings.openai_api_key:
            raise RuntimeError("EDGE_OPENAI_API_KEY is required when provider=openai")
        return HTTPOpenAIProvider(
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            timeout_s=settings.provider_timeout_s,
        )
    raise RuntimeError(f"Unsupported EDGE_PROVIDER value: {kind}")


def _build_rate_limiter(settings: Settings) -> RateLimitStore | None:
    if not settings.rate_limit_enabled:
        return None
    kind = settings.rate_limit_backend_normalized
    if kind == "memory":
        return InMemoryRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_ms=settings.rate_limit_window_ms,
        )
    if kind == "redis":
        if not settings.rate_limit_redis_url:
            raise RuntimeError("EDGE_RATE_LIMIT_REDIS_URL is required when backend=redis")
        return RedisRateLimiter(
            redis_url=settings.rate_limit_redis_url,
            max_requests=settings.rate_limit_max_requests,
            window_ms=settings.rate_limit_window_ms,
            key_prefix=settings.rate_limit_redis_prefix,
        )
    raise RuntimeError(f"Unsupported EDGE_RATE_LIMIT_BACKEND value: {kind}")


def create_app(
    settings: Settings | None = None,
    backend: InMemoryBackend | SupabaseBackend | None = None,
    provider: LLMProvider | None = None,
    rate_limiter: RateLimitStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Edge RAG Gateway", version=settings.app_version)

    # Last added runs first: CORS wraps everything, including 429s and 500s.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(CORSHeadersMiddleware)

    backend = backend or _build_backend(settings)
    provider = provider or _build_provider(settings)

    chat_service = ChatService(
        settings=settings,
        session_manager=SessionManager(backend, history_limit=settings.chat_history_limit),
        retrieval_orchestrator=RetrievalOrchestrator(
            provider=provider,
            storage=backend,
            embedding_model=settings.embedding_model,
            rpc_name=settings.search_rpc_name,
        ),
        completion_assembler=CompletionAssembler(
            provider=provider,
            model=settings.chat_model,
            max_tokens=settings.chat_max_tokens,
            temperature=settings.chat_temperature,
        ),
        persistence_writer=PersistenceWriter(backend),
    )
    app.state.settings = settings
    app.state.backend = backend
    app.state.provider = provider
    app.state.auth_gate = AuthGate(backend)
    app.state.rate_limiter = rate_limiter or _build_rate_limiter(settings)
    app.state.chat_service = chat_service

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        request_id = request_id_from_request(request)
        return app_error_response(
            exc.status_code, exc.code, exc.error_type, exc.message, request_id
        )

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(
        request: Request, exc: SessionNotFoundError
    ) -> JSONResponse:
        request_id = request_id_from_request(request)
        logger.warning(
            "session_not_found",
            extra={
                "request_id": request_id,
                "user_id": getattr(request.state, "user_id", None),
                "session_id": exc.session_id,
            },
        )
        return app_error_response(
            404, "session_not_found", "not_found", "Session not found", request_id
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        request_id = request_id_from_request(request)
        code, label = HTTP_ERROR_LABELS.get(exc.status_code, ("http_error", str(exc.detail)))
        response = app_error_response(exc.status_code, code, "routing", label, request_id)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    app.include_router(router)
    return app


app = create_app()
