from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    session_id: UUID | None = Field(default=None, alias="sessionId")

    @field_validator("session_id", mode="before")
    @classmethod
    def _empty_session_id_is_absent(cls, value: object) -> object:
        return value or None


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    session_id: str = Field(alias="sessionId")


class EmbedRequest(BaseModel):
    text: str = Field(min_length=1)


class EmbedResponse(BaseModel):
    embedding: list[float]


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1, le=100)
    threshold: float | None = Field(default=None, ge=0, le=1)


class SearchResult(BaseModel):
    id: str | None = None
    title: str
    content: str
    similarity: float


class SearchResponse(BaseModel):
    results: list[SearchResult]
