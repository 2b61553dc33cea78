from __future__ import annotations

import logging
import math

import pytest

from src.rag.similarity import cosine_similarity, rank, rank_with_scores
from src.rag.types import Chunk, ChunkMetadata, EmbeddedDocument


def _doc(doc_id: str, embedding: list[float] | None) -> EmbeddedDocument:
    metadata = ChunkMetadata(project="P", section="S", project_index=0, section_index=0)
    return EmbeddedDocument(chunk=Chunk(id=doc_id, content=doc_id, metadata=metadata), embedding=embedding)


def test_cosine_similarity_is_symmetric_and_bounded() -> None:
    a = [0.3, -1.2, 4.0]
    b = [2.0, 0.5, -0.7]

    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
    assert -1.0 <= cosine_similarity(a, b) <= 1.0
    assert cosine_similarity(a, a) == pytest.approx(1.0)
    assert cosine_similarity(a, [-x for x in a]) == pytest.approx(-1.0)


def test_cosine_similarity_zero_vector_and_mismatch(caplog: pytest.LogCaptureFixture) -> None:
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
    with caplog.at_level(logging.WARNING):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0
    assert "similarity_dimension_mismatch" in caplog.text


def test_rank_orders_by_descending_similarity() -> None:
    docs = [
        _doc("orthogonal", [0.0, 1.0]),
        _doc("exact", [1.0, 0.0]),
        _doc("close", [1.0, 0.2]),
    ]

    ranked = rank_with_scores([1.0, 0.0], docs, top_k=3)

    assert [doc.id for doc, _ in ranked] == ["exact", "close", "orthogonal"]
    scores = [score for _, score in ranked]
    assert scores == sorted(scores, reverse=True)
    assert math.isclose(scores[0], 1.0)


def test_rank_truncates_and_skips_missing_vectors() -> None:
    docs = [_doc("a", [1.0, 0.0]), _doc("b", None), _doc("c", [0.5, 0.5]), _doc("d", [])]

    assert [doc.id for doc in rank([1.0, 0.0], docs, top_k=1)] == ["a"]
    assert [doc.id for doc in rank([1.0, 0.0], docs, top_k=10)] == ["a", "c"]


def test_rank_ties_keep_input_order() -> None:
    docs = [_doc("first", [1.0, 2.0]), _doc("second", [1.0, 2.0]), _doc("third", [1.0, 2.0])]

    assert [doc.id for doc in rank([1.0, 1.0], docs, top_k=3)] == ["first", "second", "third"]


def test_rank_with_zero_and_negative_top_k() -> None:
    docs = [_doc("a", [1.0, 0.0])]

    assert rank([1.0, 0.0], docs, top_k=0) == []
    with pytest.raises(ValueError):
        rank([1.0, 0.0], docs, top_k=-1)


def test_mismatched_candidate_scores_zero() -> None:
    docs = [_doc("short", [1.0]), _doc("match", [0.1, 0.9])]

    ranked = rank_with_scores([1.0, 0.0], docs, top_k=2)

    assert [doc.id for doc, _ in ranked] == ["match", "short"]
    assert ranked[1][1] == 0.0


def test_custom_vector_accessor() -> None:
    items = [("x", [0.0, 1.0]), ("y", [1.0, 0.0])]

    ranked = rank([1.0, 0.0], items, top_k=1, vector_of=lambda item: item[1])

    assert ranked == [("y", [1.0, 0.0])]
