"""Vector similarity helpers."""

from __future__ import annotations

from collections.abc import Sequence
from math import sqrt


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched or zero-norm vectors."""

    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)


def similarity_to_confidence(similarity: float) -> float:
    """Rescale cosine similarity from [-1, 1] to [0, 1]."""

    return (similarity + 1.0) / 2.0
