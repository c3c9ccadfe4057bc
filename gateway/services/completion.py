from gateway.providers.base import LLMProvider
from gateway.sessions.models import Message

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant. Use the following context to answer questions:

{context}

If you don't know the answer based on the context, say so. Be helpful and accurate."""


class CompletionError(Exception):
    """Raised when the provider response carries no usable assistant message."""


class CompletionAssembler:
    def __init__(
        self,
        provider: LLMProvider,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ):
        self._provider = provider
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def build_messages(
        context: str, history: list[Message], user_message: str
    ) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": SYSTEM_PROMPT_TEMPLATE.format(context=context)}]
        messages.extend({"role": item.role, "content": item.content} for item in history)
        messages.append({"role": "user", "content": user_message})
        return messages

    async def complete(self, context: str, history: list[Message], user_message: str) -> str:
        messages = self.build_messages(context, history, user_message)
        result = await self._provider.chat(
            self._model, messages, self._max_tokens, self._temperature
        )
        return self._first_choice_content(result)

    @staticmethod
    def _first_choice_content(result: dict[str, object]) -> str:
        choices = result.get("choices")
        if not isinstance(choices, list) or not choices:
            raise CompletionError("completion returned no choices")
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise CompletionError("completion choice has no message content")
        return content
