from time import time
from uuid import uuid4

from gateway.rag.embeddings import HashEmbeddingGenerator

STUB_REPLY_PREFIX = "Stub response: "


class StubProvider:
    """Offline provider: hash embeddings and a completion that echoes the user."""

    def __init__(self, embedding_dim: int = 1536):
        self._embedding_generator = HashEmbeddingGenerator(embedding_dim=embedding_dim)

    @property
    def embedding_generator(self) -> HashEmbeddingGenerator:
        return self._embedding_generator

    async def embed(self, model: str, text: str) -> list[float]:
        return self._embedding_generator.embed_texts([text])[0]

    async def chat(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict[str, object]:
        question = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        return {
            "id": f"stub-{uuid4().hex}",
            "object": "chat.completion",
            "created": int(time()),
            "model": model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": STUB_REPLY_PREFIX + question[:120]},
                }
            ],
            "max_tokens_applied": max_tokens,
            "temperature_applied": temperature,
        }
