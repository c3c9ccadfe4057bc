from datetime import UTC, datetime, timedelta

from gateway.backends.base import StorageBackend
from gateway.sessions.models import MESSAGES_TABLE


class PersistenceWriter:
    def __init__(self, storage: StorageBackend):
        self._storage = storage

    async def record(self, session_id: str, user_message: str, assistant_message: str) -> None:
        """Store the user and assistant turns in one batched insert.

        Both rows are stamped here, the assistant one a microsecond later, so
        their creation order survives a shared server-side ``now()``.
        """
        user_at = datetime.now(UTC)
        assistant_at = user_at + timedelta(microseconds=1)
        await self._storage.insert_rows(
            MESSAGES_TABLE,
            [
                {
                    "session_id": session_id,
                    "role": "user",
                    "content": user_message,
                    "created_at": user_at.isoformat(timespec="microseconds"),
                },
                {
                    "session_id": session_id,
                    "role": "assistant",
                    "content": assistant_message,
                    "created_at": assistant_at.isoformat(timespec="microseconds"),
                },
            ],
        )
