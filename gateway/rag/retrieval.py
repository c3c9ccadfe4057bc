from gateway.backends.base import StorageBackend
from gateway.providers.base import LLMProvider
from gateway.rag.types import RetrievalResult, RetrievedDocument


class RetrievalOrchestrator:
    def __init__(
        self,
        provider: LLMProvider,
        storage: StorageBackend,
        embedding_model: str,
        rpc_name: str = "search_documents",
    ):
        self._provider = provider
        self._storage = storage
        self._embedding_model = embedding_model
        self._rpc_name = rpc_name

    async def embed(self, text: str) -> list[float]:
        # Dimension is model-defined and trusted as returned.
        return await self._provider.embed(self._embedding_model, text)

    async def retrieve(self, query: str, threshold: float, limit: int) -> RetrievalResult:
        embedding = await self.embed(query)
        rows = await self._storage.call_rpc(
            self._rpc_name,
            {
                "query_embedding": embedding,
                "match_threshold": threshold,
                "match_count": limit,
            },
        )
        documents = [RetrievedDocument.from_row(row) for row in rows]
        return RetrievalResult(embedding=embedding, documents=documents)


def build_context(documents: list[RetrievedDocument]) -> str:
    return "\n\n".join(f"{doc.title}: {doc.content}" for doc in documents)
