from __future__ import annotations

import httpx
import pytest

from src.rag.embeddings import EmbeddingError
from src.rag.llm import GenerationError, OpenAIGenerator
from src.rag.types import Chunk, ChunkMetadata, EmbeddedDocument
from src.tests.fakes import CountingEmbedder, ScriptedGenerator, TableEmbedder
from src.vectorstore.errors import NotConfiguredError
from src.vectorstore.hyde import HydeVectorStore

pytestmark = pytest.mark.anyio


def _chunk(chunk_id: str, content: str, project: str = "Lighthouse", section: str = "Overview") -> Chunk:
    return Chunk(
        id=chunk_id,
        content=content,
        metadata=ChunkMetadata(project=project, section=section, project_index=0, section_index=0),
    )


def _table_embedder() -> TableEmbedder:
    return TableEmbedder(
        table={
            "alpha content": [1.0, 0.0],
            "beta content": [0.0, 1.0],
            "beta passage": [0.1, 0.9],
        },
        default=[0.7, 0.7],
    )


async def test_search_ranks_by_hypothetical_passage() -> None:
    embedder = _table_embedder()
    generator = ScriptedGenerator(responses=["  beta passage  "])
    store = HydeVectorStore(embedder=embedder, generator=generator)
    await store.add_documents([_chunk("a", "alpha content"), _chunk("b", "beta content", section="Budget")])

    results = await store.search("Which project has the budget?", top_k=2)

    assert [doc.id for doc in results] == ["b", "a"]
    assert "beta passage" in embedder.calls
    assert "Which project has the budget?" not in embedder.calls
    record = store.hypothetical_documents[-1]
    assert record.text == "beta passage"
    assert record.original_query == "Which project has the budget?"
    assert record.embedding == [0.1, 0.9]
    assert record.context["fallback"] is False


async def test_prompt_contains_instruction_example_and_query() -> None:
    generator = ScriptedGenerator(responses=["passage"])
    store = HydeVectorStore(embedder=CountingEmbedder(), generator=generator)

    await store.generate_hypothetical_document("What is Aurora?", task_instruction="Be specific.")

    prompt = generator.prompts[0]
    assert prompt.startswith("Be specific.")
    assert "Project Lighthouse" in prompt
    assert prompt.endswith("Question: What is Aurora?\nPassage:")


async def test_generation_failure_falls_back_to_query() -> None:
    embedder = CountingEmbedder()
    generator = ScriptedGenerator(responses=[GenerationError("timeout")])
    store = HydeVectorStore(embedder=embedder, generator=generator)
    await store.add_documents([_chunk("a", "alpha content")])

    results = await store.search("raw query text")

    assert [doc.id for doc in results] == ["a"]
    assert embedder.calls[-1] == "raw query text"
    assert store.hypothetical_documents[-1].text == "raw query text"
    assert store.hypothetical_documents[-1].context["fallback"] is True


async def test_empty_generation_falls_back_to_query() -> None:
    store = HydeVectorStore(embedder=CountingEmbedder(), generator=ScriptedGenerator(default="   "))

    assert await store.generate_hypothetical_document("the query") == "the query"


async def test_add_documents_is_idempotent_for_embedded_documents() -> None:
    embedder = CountingEmbedder()
    store = HydeVectorStore(embedder=embedder, generator=ScriptedGenerator())
    existing = EmbeddedDocument(chunk=_chunk("a", "alpha content"), embedding=[1.0] * embedder.dimension)

    added = await store.add_documents([existing, _chunk("b", "beta content")])

    assert added == 2
    assert embedder.calls == ["beta content"]
    assert store.documents[0].embedding == [1.0] * embedder.dimension


async def test_embedding_failure_during_indexing_skips_vector() -> None:
    embedder = CountingEmbedder(fail_on=lambda text: text == "bad content")
    store = HydeVectorStore(embedder=embedder, generator=ScriptedGenerator(default="alpha"))

    await store.add_documents([_chunk("bad", "bad content"), _chunk("good", "alpha content")])
    results = await store.search("alpha", top_k=5)

    assert store.documents[0].embedding is None
    assert [doc.id for doc in results] == ["good"]


async def test_embedding_failure_at_query_time_propagates() -> None:
    embedder = CountingEmbedder(fail_on=lambda text: text == "passage")
    store = HydeVectorStore(embedder=embedder, generator=ScriptedGenerator(default="passage"))

    with pytest.raises(EmbeddingError):
        await store.search("query")


async def test_empty_store_returns_empty_results_and_logs_record() -> None:
    store = HydeVectorStore(embedder=CountingEmbedder(), generator=ScriptedGenerator(default="x"))

    assert await store.search("anything") == []
    assert len(store.hypothetical_documents) == 1


async def test_missing_collaborators_raise_not_configured() -> None:
    store = HydeVectorStore()

    with pytest.raises(NotConfiguredError):
        await store.add_documents([_chunk("a", "alpha content")])
    with pytest.raises(NotConfiguredError):
        await store.search("query")
    with pytest.raises(NotConfiguredError):
        await store.generate_hypothetical_document("query")

    store.configure(CountingEmbedder(), ScriptedGenerator(default="ok"))
    assert await store.search("query") == []


async def test_negative_top_k_is_rejected_before_generation() -> None:
    generator = ScriptedGenerator(default="passage")
    store = HydeVectorStore(embedder=CountingEmbedder(), generator=generator)

    with pytest.raises(ValueError):
        await store.search("query", top_k=-1)
    assert generator.prompts == []


async def test_stats_report_counts() -> None:
    store = HydeVectorStore(embedder=CountingEmbedder(dimension=16), generator=ScriptedGenerator())
    await store.add_documents([_chunk("a", "alpha content")])

    stats = store.stats()

    assert stats["document_count"] == 1
    assert stats["embedded_count"] == 1
    assert stats["embedding_dimension"] == 16


async def test_malformed_provider_response_falls_back_to_query() -> None:
    generator = OpenAIGenerator(
        api_key="sk-test",
        base_url="https://openai.test/v1",
        model="gpt-4o-mini",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"choices": ["oops"]})
        ),
    )
    embedder = CountingEmbedder()
    store = HydeVectorStore(embedder=embedder, generator=generator)
    await store.add_documents([_chunk("a", "alpha content")])

    assert await store.generate_hypothetical_document("q about budget") == "q about budget"
    results = await store.search("q about budget")

    assert [doc.id for doc in results] == ["a"]
    assert store.hypothetical_documents[-1].context["fallback"] is True
    assert "q about budget" in embedder.calls
