from typing import Any, Protocol

Row = dict[str, Any]


class BackendError(Exception):
    def __init__(self, message: str, status_code: int | None = None, code: str = "backend_error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class IdentityBackend(Protocol):
    async def verify_token(self, token: str) -> str | None:
        """Return the user id owning *token*, or None when no user matches."""


class StorageBackend(Protocol):
    async def insert_rows(self, table: str, rows: list[Row]) -> list[Row]:
        """Insert *rows* in one batch and return the stored representation."""

    async def select_row(self, table: str, filters: dict[str, str]) -> Row | None:
        """Return the single row matching every equality filter, if any."""

    async def list_rows(
        self,
        table: str,
        filters: dict[str, str],
        order: str,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        """Return rows matching *filters*, sorted by *order*."""

    async def call_rpc(self, name: str, params: dict[str, Any]) -> list[Row]:
        """Invoke a stored procedure and return its result rows."""
