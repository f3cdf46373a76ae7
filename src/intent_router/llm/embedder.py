"""Deterministic embedding backend for offline runs and tests."""

from __future__ import annotations

import re
from hashlib import blake2b
from math import sqrt

from langchain_core.embeddings import Embeddings

_TOKEN = re.compile(r"[a-z0-9][a-z0-9'/-]*")


class HashingEmbeddings(Embeddings):
    """Signed feature hashing over lowercase word tokens, L2-normalized.

    No model calls; similar wording gives similar vectors, nothing more.
    Blank text embeds to the zero vector, which cosine similarity scores as
    0.0 against everything. Set `BackendConfig.provider` to "openai" for
    semantic quality.
    """

    def __init__(self, dimension: int = 256) -> None:
        self.dimension = dimension

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN.findall(text.lower()):
            bucket, sign = self._feature(token)
            vector[bucket] += sign

        norm = sqrt(sum(value * value for value in vector))
        return [value / norm for value in vector] if norm else vector

    def _feature(self, token: str) -> tuple[int, float]:
        digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
        bucket = int.from_bytes(digest[:4], "little") % self.dimension
        return bucket, (-1.0 if digest[4] & 1 else 1.0)
