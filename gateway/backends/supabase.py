"""Supabase binding: GoTrue token verification and PostgREST storage/RPC."""

from typing import Any

import httpx

from gateway.backends.base import BackendError, Row


class SupabaseBackend:
    """Talks to a Supabase project with the service-role key."""

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._service_role_key = service_role_key
        self._timeout = timeout_s
        self._transport = transport

    async def verify_token(self, token: str) -> str | None:
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {token}",
        }
        resp = await self._request("GET", "/auth/v1/user", headers=headers)
        if resp.status_code in {401, 403, 404}:
            return None
        self._raise_for_status(resp)

        body = resp.json()
        if not isinstance(body, dict):
            return None
        user_id = body.get("id")
        return str(user_id) if user_id else None

    async def insert_rows(self, table: str, rows: list[Row]) -> list[Row]:
        resp = await self._request(
            "POST",
            f"/rest/v1/{table}",
            headers=self._rest_headers(prefer="return=representation"),
            json=rows,
        )
        self._raise_for_status(resp)
        return self._rows(resp)

    async def select_row(self, table: str, filters: dict[str, str]) -> Row | None:
        params = {"select": "*", "limit": "1", **self._eq_params(filters)}
        resp = await self._request(
            "GET", f"/rest/v1/{table}", headers=self._rest_headers(), params=params
        )
        self._raise_for_status(resp)
        rows = self._rows(resp)
        return rows[0] if rows else None

    async def list_rows(
        self,
        table: str,
        filters: dict[str, str],
        order: str,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        direction = "desc" if descending else "asc"
        params = {"select": "*", "order": f"{order}.{direction}", **self._eq_params(filters)}
        if limit is not None:
            params["limit"] = str(limit)
        resp = await self._request(
            "GET", f"/rest/v1/{table}", headers=self._rest_headers(), params=params
        )
        self._raise_for_status(resp)
        return self._rows(resp)

    async def call_rpc(self, name: str, params: dict[str, Any]) -> list[Row]:
        resp = await self._request(
            "POST", f"/rest/v1/rpc/{name}", headers=self._rest_headers(), json=params
        )
        self._raise_for_status(resp)
        return self._rows(resp)

    def _rest_headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    @staticmethod
    def _eq_params(filters: dict[str, str]) -> dict[str, str]:
        return {column: f"eq.{value}" for column, value in filters.items()}

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        json: object | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        client_kwargs: dict[str, Any] = {"timeout": self._timeout}
        if self._transport is not None:
            client_kwargs["transport"] = self._transport

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                return await client.request(
                    method, url, headers=headers, params=params, json=json
                )
        except httpx.TimeoutException as exc:
            raise BackendError(
                f"Backend request timed out: {exc}", code="backend_timeout"
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(
                f"Cannot reach backend: {exc}", code="backend_connection_error"
            ) from exc

    @staticmethod
    def _rows(resp: httpx.Response) -> list[Row]:
        body = resp.json()
        if body is None:
            return []
        if isinstance(body, dict):
            return [body]
        if not isinstance(body, list):
            raise BackendError("Backend returned an unexpected payload")
        return [row for row in body if isinstance(row, dict)]

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return
        detail = ""
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = str(body.get("message") or body.get("msg") or "")
        message = f"Backend returned {resp.status_code}"
        if detail:
            message = f"{message}: {detail}"
        raise BackendError(message, status_code=resp.status_code)
