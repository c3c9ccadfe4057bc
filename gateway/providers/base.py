from typing import Protocol


class ProviderError(Exception):
    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        error_type: str = "provider",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.error_type = error_type


class LLMProvider(Protocol):
    async def embed(self, model: str, text: str) -> list[float]:
        """Return the embedding vector for *text*."""

    async def chat(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict[str, object]:
        """Return an OpenAI-style chat completion payload."""
