from datetime import datetime
from typing import Literal

from pydantic import BaseModel

SESSIONS_TABLE = "chat_sessions"
MESSAGES_TABLE = "chat_messages"


class Session(BaseModel):
    id: str
    user_id: str
    title: str | None = None
    created_at: datetime | None = None


class Message(BaseModel):
    id: str
    session_id: str
    role: Literal["user", "assistant", "system"]
    content: str
    created_at: datetime | None = None
