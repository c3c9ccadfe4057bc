from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RetrievedDocument:
    title: str
    content: str
    similarity: float
    id: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "RetrievedDocument":
        raw_id = row.get("id")
        return cls(
            title=str(row.get("title", "")),
            content=str(row.get("content", "")),
            similarity=float(row.get("similarity", 0.0)),
            id=str(raw_id) if raw_id is not None else None,
        )


@dataclass(frozen=True)
class RetrievalResult:
    embedding: list[float]
    documents: list[RetrievedDocument] = field(default_factory=list)
