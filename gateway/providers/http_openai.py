"""Language-model provider for OpenAI-compatible chat and embeddings APIs."""

from typing import Any

import httpx

from gateway.providers.base import ProviderError

CHAT_PATH = "/v1/chat/completions"
EMBEDDINGS_PATH = "/v1/embeddings"


class HTTPOpenAIProvider:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_s
        self._transport = transport

    async def chat(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int | None,
        temperature: float | None,
    ) -> dict[str, object]:
        body: dict[str, object] = {"model": model, "messages": messages}
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        if temperature is not None:
            body["temperature"] = temperature
        return await self._post(CHAT_PATH, body)

    async def embed(self, model: str, text: str) -> list[float]:
        result = await self._post(EMBEDDINGS_PATH, {"model": model, "input": text})

        data = result.get("data")
        first = data[0] if isinstance(data, list) and data else None
        vector = first.get("embedding") if isinstance(first, dict) else None
        if not isinstance(vector, list):
            raise ProviderError(
                status_code=502,
                code="provider_invalid_response",
                message="Embeddings response carries no embedding vector",
            )
        return [float(value) for value in vector]

    async def _post(self, path: str, body: dict[str, object]) -> dict[str, Any]:
        client_kwargs: dict[str, Any] = {"timeout": self._timeout}
        if self._transport is not None:
            client_kwargs["transport"] = self._transport

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                resp = await client.post(
                    f"{self._base_url}{path}",
                    json=body,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                status_code=503,
                code="provider_timeout",
                message=f"Provider request timed out: {exc}",
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                status_code=502,
                code="provider_connection_error",
                message=f"Cannot reach provider: {exc}",
            ) from exc

        if resp.status_code >= 400:
            raise self._status_error(resp)
        payload = resp.json()
        if not isinstance(payload, dict):
            raise ProviderError(
                status_code=502,
                code="provider_invalid_response",
                message="Provider returned a non-object payload",
            )
        return payload

    @staticmethod
    def _status_error(resp: httpx.Response) -> ProviderError:
        detail = ""
        try:
            error = resp.json().get("error")
        except (ValueError, AttributeError):
            error = None
        if isinstance(error, dict) and error.get("message"):
            detail = f": {error['message']}"
        message = f"Provider returned {resp.status_code}{detail}"

        if resp.status_code == 429:
            return ProviderError(429, "provider_rate_limited", message, error_type="rate_limit")
        if resp.status_code in {502, 503}:
            return ProviderError(resp.status_code, "provider_upstream_error", message)
        return ProviderError(resp.status_code, "provider_error", message)
