import logging
from time import perf_counter

from gateway.config.settings import Settings
from gateway.models.api import (
    ChatRequest,
    ChatResponse,
    EmbedRequest,
    EmbedResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
)
from gateway.rag.retrieval import RetrievalOrchestrator, build_context
from gateway.services.completion import CompletionAssembler
from gateway.services.persistence import PersistenceWriter
from gateway.sessions.manager import SessionManager

logger = logging.getLogger("edge.chat")


class ChatService:
    def __init__(
        self,
        settings: Settings,
        session_manager: SessionManager,
        retrieval_orchestrator: RetrievalOrchestrator,
        completion_assembler: CompletionAssembler,
        persistence_writer: PersistenceWriter,
    ):
        self._settings = settings
        self._session_manager = session_manager
        self._retrieval_orchestrator = retrieval_orchestrator
        self._completion_assembler = completion_assembler
        self._persistence_writer = persistence_writer

    async def handle_chat(
        self, user_id: str, payload: ChatRequest, request_id: str | None = None
    ) -> ChatResponse:
        started = perf_counter()
        requested_session = str(payload.session_id) if payload.session_id else None

        session = await self._session_manager.resolve(requested_session, user_id)
        history = await self._session_manager.history(session.id)

        retrieval = await self._retrieval_orchestrator.retrieve(
            payload.message,
            threshold=self._settings.chat_match_threshold,
            limit=self._settings.chat_match_count,
        )
        context = build_context(retrieval.documents)

        reply = await self._completion_assembler.complete(context, history, payload.message)

        # Not transactional with session creation: a failure here leaves the
        # new session without messages and surfaces as a 500.
        await self._persistence_writer.record(session.id, payload.message, reply)

        logger.info(
            "chat_completed",
            extra={
                "request_id": request_id,
                "user_id": user_id,
                "session_id": session.id,
                "model": self._completion_assembler.model,
                "history_count": len(history),
                "document_count": len(retrieval.documents),
                "latency_ms": int((perf_counter() - started) * 1000),
            },
        )
        return ChatResponse(response=reply, session_id=session.id)

    async def handle_embed(self, payload: EmbedRequest) -> EmbedResponse:
        embedding = await self._retrieval_orchestrator.embed(payload.text)
        return EmbedResponse(embedding=embedding)

    async def handle_search(
        self, payload: SearchRequest, request_id: str | None = None
    ) -> SearchResponse:
        started = perf_counter()
        threshold = (
            payload.threshold
            if payload.threshold is not None
            else self._settings.search_default_threshold
        )
        limit = payload.limit if payload.limit is not None else self._settings.search_default_limit

        retrieval = await self._retrieval_orchestrator.retrieve(
            payload.query, threshold=threshold, limit=limit
        )
        logger.info(
            "search_completed",
            extra={
                "request_id": request_id,
                "document_count": len(retrieval.documents),
                "latency_ms": int((perf_counter() - started) * 1000),
            },
        )
        return SearchResponse(
            results=[
                SearchResult(
                    id=doc.id,
                    title=doc.title,
                    content=doc.content,
                    similarity=doc.similarity,
                )
                for doc in retrieval.documents
            ]
        )
