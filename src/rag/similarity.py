from __future__ import annotations

"""Brute-force cosine similarity ranking over in-memory candidates."""

import logging
import math
from typing import Callable, Iterable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TOP_K = 3


def _embedding_of(item: object) -> Sequence[float] | None:
    return getattr(item, "embedding", None)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Vectors of different length, and zero-norm vectors, score 0.0.
    """
    if len(a) != len(b):
        logger.warning(
            "similarity_dimension_mismatch",
            extra={"left_dimension": len(a), "right_dimension": len(b)},
        )
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank_with_scores(
    query_vector: Sequence[float],
    candidates: Iterable[T],
    top_k: int = DEFAULT_TOP_K,
    vector_of: Callable[[T], Sequence[float] | None] | None = None,
) -> list[tuple[T, float]]:
    """Score candidates against the query and return the best top_k pairs.

    Candidates without a vector are skipped. Equal scores keep input order
    because the sort is stable.
    """
    if top_k < 0:
        raise ValueError("top_k must be >= 0")
    if top_k == 0:
        return []
    scored: list[tuple[T, float]] = []
    for candidate in candidates:
        vector = (vector_of or _embedding_of)(candidate)
        if not vector:
            continue
        scored.append((candidate, cosine_similarity(query_vector, vector)))
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored[:top_k]


def rank(
    query_vector: Sequence[float],
    candidates: Iterable[T],
    top_k: int = DEFAULT_TOP_K,
    vector_of: Callable[[T], Sequence[float] | None] | None = None,
) -> list[T]:
    """Return the top_k candidates ordered by descending similarity."""
    return [
        candidate
        for candidate, _ in rank_with_scores(query_vector, candidates, top_k, vector_of)
    ]
