import re
from hashlib import sha256
from math import sqrt
from typing import Protocol


class EmbeddingGenerator(Protocol):
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Return one embedding vector per input text, preserving order."""


class HashEmbeddingGenerator:
    """Deterministic bag-of-tokens embedding used by the stub provider."""

    def __init__(self, embedding_dim: int):
        if embedding_dim < 1:
            raise ValueError("embedding_dim must be >= 1")
        self._embedding_dim = embedding_dim

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [self._text_to_vector(text) for text in texts]

    def _text_to_vector(self, text: str) -> list[float]:
        vector = [0.0] * self._embedding_dim
        tokens = re.findall(r"[a-z0-9]+", text.lower())
        if not tokens:
            return vector

        for token in tokens:
            digest = sha256(token.encode("utf-8")).digest()
            idx = int.from_bytes(digest[:2], byteorder="big") % self._embedding_dim
            sign = 1.0 if digest[2] % 2 == 0 else -1.0
            vector[idx] += sign

        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [round(value / norm, 6) for value in vector]


def cosine_similarity(left: list[float], right: list[float]) -> float:
    if len(left) != len(right):
        raise ValueError(
            f"embedding dimension mismatch: {len(left)} != {len(right)}"
        )
    dot = sum(a * b for a, b in zip(left, right, strict=True))
    left_norm = sqrt(sum(a * a for a in left))
    right_norm = sqrt(sum(b * b for b in right))
    if left_norm == 0 or right_norm == 0:
        return 0.0
    return dot / (left_norm * right_norm)
