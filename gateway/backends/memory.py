"""Process-local backend for development and tests.

Mirrors the Supabase binding closely enough for the gateway: bearer tokens
map to user ids, tables hold plain dict rows with generated ids and
timestamps, and ``search_documents`` ranks stored document embeddings by
cosine similarity.
"""

import json
from datetime import UTC, datetime
from itertools import count
from pathlib import Path
from typing import Any
from uuid import uuid4

from gateway.backends.base import BackendError, Row
from gateway.rag.embeddings import EmbeddingGenerator, cosine_similarity

DOCUMENTS_TABLE = "documents"


class InMemoryBackend:
    def __init__(
        self,
        tokens: dict[str, str] | None = None,
        search_rpc_name: str = "search_documents",
    ):
        self._tokens = dict(tokens) if tokens else {}
        self._search_rpc_name = search_rpc_name
        self._tables: dict[str, list[tuple[int, Row]]] = {}
        self._sequence = count()

    def add_document(
        self,
        title: str,
        content: str,
        embedding: list[float],
        metadata: dict[str, str] | None = None,
    ) -> Row:
        row = {
            "title": title,
            "content": content,
            "embedding": list(embedding),
            "metadata": dict(metadata or {}),
        }
        return self._store(DOCUMENTS_TABLE, row)

    def load_documents(self, path: Path, generator: EmbeddingGenerator) -> int:
        """Seed documents from a JSONL file with ``title`` and ``content`` keys."""
        records: list[dict[str, Any]] = []
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            record = json.loads(line)
            if isinstance(record, dict) and record.get("title") and record.get("content"):
                records.append(record)

        vectors = generator.embed_texts(
            [f"{record['title']} {record['content']}" for record in records]
        )
        for record, vector in zip(records, vectors, strict=True):
            self.add_document(
                title=str(record["title"]),
                content=str(record["content"]),
                embedding=vector,
                metadata={str(k): str(v) for k, v in (record.get("metadata") or {}).items()},
            )
        return len(records)

    def rows(self, table: str) -> list[Row]:
        return [dict(row) for _, row in self._tables.get(table, [])]

    async def verify_token(self, token: str) -> str | None:
        return self._tokens.get(token)

    async def insert_rows(self, table: str, rows: list[Row]) -> list[Row]:
        return [dict(self._store(table, dict(row))) for row in rows]

    async def select_row(self, table: str, filters: dict[str, str]) -> Row | None:
        for _, row in self._tables.get(table, []):
            if self._matches(row, filters):
                return dict(row)
        return None

    async def list_rows(
        self,
        table: str,
        filters: dict[str, str],
        order: str,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        matched = [
            (str(row.get(order, "")), seq, row)
            for seq, row in self._tables.get(table, [])
            if self._matches(row, filters)
        ]
        matched.sort(key=lambda item: (item[0], item[1]), reverse=descending)
        if limit is not None:
            matched = matched[:limit]
        return [dict(row) for _, _, row in matched]

    async def call_rpc(self, name: str, params: dict[str, Any]) -> list[Row]:
        if name != self._search_rpc_name:
            raise BackendError(f"Unknown rpc: {name}", status_code=404)

        query_embedding = [float(value) for value in params["query_embedding"]]
        threshold = float(params.get("match_threshold", 0.5))
        match_count = int(params.get("match_count", 10))

        scored: list[Row] = []
        for _, row in self._tables.get(DOCUMENTS_TABLE, []):
            similarity = cosine_similarity(query_embedding, row["embedding"])
            if similarity > threshold:
                scored.append(
                    {
                        "id": row["id"],
                        "title": row["title"],
                        "content": row["content"],
                        "similarity": round(similarity, 6),
                    }
                )
        scored.sort(key=lambda item: item["similarity"], reverse=True)
        return scored[:match_count]

    def _store(self, table: str, row: Row) -> Row:
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", datetime.now(UTC).isoformat(timespec="microseconds"))
        self._tables.setdefault(table, []).append((next(self._sequence), row))
        return row

    @staticmethod
    def _matches(row: Row, filters: dict[str, str]) -> bool:
        return all(str(row.get(column)) == str(value) for column, value in filters.items())
