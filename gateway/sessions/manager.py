import logging

from gateway.backends.base import StorageBackend
from gateway.sessions.models import MESSAGES_TABLE, SESSIONS_TABLE, Message, Session

logger = logging.getLogger("edge.chat")

DEFAULT_TITLE = "New Chat"
DEFAULT_HISTORY_LIMIT = 10


class SessionNotFoundError(Exception):
    """Raised when a session id does not resolve to a row owned by the caller."""

    def __init__(self, session_id: str):
        super().__init__(f"session '{session_id}' not found")
        self.session_id = session_id


class SessionManager:
    def __init__(self, storage: StorageBackend, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self._storage = storage
        self._history_limit = history_limit

    async def create(self, user_id: str) -> Session:
        rows = await self._storage.insert_rows(
            SESSIONS_TABLE, [{"user_id": user_id, "title": DEFAULT_TITLE}]
        )
        if not rows:
            raise RuntimeError("session insert returned no row")
        session = Session.model_validate(rows[0])
        logger.info("session_created", extra={"session_id": session.id, "user_id": user_id})
        return session

    async def lookup(self, session_id: str, user_id: str) -> Session | None:
        # Ownership is enforced by the filter: a foreign session is simply absent.
        row = await self._storage.select_row(
            SESSIONS_TABLE, {"id": session_id, "user_id": user_id}
        )
        if row is None:
            return None
        return Session.model_validate(row)

    async def resolve(self, session_id: str | None, user_id: str) -> Session:
        if not session_id:
            return await self.create(user_id)

        session = await self.lookup(session_id, user_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def history(self, session_id: str) -> list[Message]:
        """Return the most recent messages of a session, oldest first."""
        rows = await self._storage.list_rows(
            MESSAGES_TABLE,
            {"session_id": session_id},
            order="created_at",
            descending=True,
            limit=self._history_limit,
        )
        return [Message.model_validate(row) for row in reversed(rows)]
