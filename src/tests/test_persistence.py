from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.loaders.chunking import chunk_projects
from src.tests.fakes import PROJECTS_MARKDOWN, CountingEmbedder, ScriptedGenerator
from src.vectorstore.hyde import HydeVectorStore
from src.vectorstore.hype import HypeVectorStore
from src.vectorstore.persistence import (
    load_hyde_index,
    load_hype_index,
    save_hyde_index,
    save_hype_index,
)

pytestmark = pytest.mark.anyio


async def _built_hyde_store() -> HydeVectorStore:
    store = HydeVectorStore(embedder=CountingEmbedder(dimension=8), generator=ScriptedGenerator())
    await store.add_documents(chunk_projects(PROJECTS_MARKDOWN))
    return store


async def _built_hype_store() -> HypeVectorStore:
    store = HypeVectorStore(
        embedder=CountingEmbedder(dimension=8),
        generator=ScriptedGenerator(default="What does this section of the project describe?"),
        index_delay=0,
    )
    await store.add_documents_with_hype(chunk_projects(PROJECTS_MARKDOWN))
    return store


async def test_hyde_index_round_trip(tmp_path: Path) -> None:
    store = await _built_hyde_store()
    path = tmp_path / "nested" / "hyde_index.json"

    written = save_hyde_index(store, path)
    loaded = load_hyde_index(path)

    assert written == 5
    assert loaded is not None
    assert [doc.chunk for doc in loaded.documents] == [doc.chunk for doc in store.documents]
    assert [doc.embedding for doc in loaded.documents] == [doc.embedding for doc in store.documents]
    entry = json.loads(path.read_text(encoding="utf-8"))[0]
    assert set(entry) == {"Id", "Content", "Metadata", "EmbeddingArray"}
    assert entry["Metadata"]["project"] == "Lighthouse"


async def test_hype_index_round_trip(tmp_path: Path) -> None:
    store = await _built_hype_store()
    path = tmp_path / "hype_index.json"

    save_hype_index(store, path)
    embedder = CountingEmbedder(dimension=8)
    loaded = load_hype_index(path, embedder=embedder, index_delay=0)

    assert loaded is not None
    assert loaded.questions == store.questions
    assert loaded.embedder is embedder
    entry = json.loads(path.read_text(encoding="utf-8"))[0]
    assert set(entry) == {
        "question",
        "question_embedding",
        "original_chunk_id",
        "original_chunk_content",
        "original_chunk_metadata",
    }
    assert entry["original_chunk_metadata"]["section_index"] == 0


async def test_null_embeddings_survive_round_trip(tmp_path: Path) -> None:
    embedder = CountingEmbedder(dimension=8, fail_on=lambda text: "Budget" in text)
    store = HydeVectorStore(embedder=embedder, generator=ScriptedGenerator())
    await store.add_documents(chunk_projects(PROJECTS_MARKDOWN))
    path = tmp_path / "hyde_index.json"

    save_hyde_index(store, path)
    loaded = load_hyde_index(path)

    assert loaded is not None
    assert [doc.embedding is None for doc in loaded.documents] == [False, False, True, False, False]


def test_missing_file_loads_as_none(tmp_path: Path) -> None:
    assert load_hyde_index(tmp_path / "absent.json") is None
    assert load_hype_index(tmp_path / "absent.json") is None


@pytest.mark.parametrize("content", ["{not json", '{"Id": "x"}', "\u0000\u0001"])
def test_unreadable_file_loads_as_none(tmp_path: Path, content: str) -> None:
    path = tmp_path / "index.json"
    path.write_text(content, encoding="utf-8")

    assert load_hyde_index(path) is None
    assert load_hype_index(path) is None


def test_invalid_entries_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "hype_index.json"
    valid = {
        "question": "Which project builds QKD links?",
        "question_embedding": [0.1, 0.2],
        "original_chunk_id": "project_0_section_0",
        "original_chunk_content": "Lighthouse",
        "original_chunk_metadata": {
            "project": "Lighthouse",
            "section": "Overview",
            "project_index": 0,
            "section_index": 0,
        },
    }
    invalid = [
        {**valid, "question_embedding": ["a"]},
        {**valid, "question_embedding": []},
        {key: value for key, value in valid.items() if key != "question"},
        {**valid, "original_chunk_metadata": "Overview"},
        "not an object",
    ]
    path.write_text(json.dumps([valid, *invalid]), encoding="utf-8")

    loaded = load_hype_index(path)

    assert loaded is not None
    assert [q.question for q in loaded.questions] == ["Which project builds QKD links?"]


def test_empty_array_loads_as_empty_store(tmp_path: Path) -> None:
    path = tmp_path / "hyde_index.json"
    path.write_text("[]", encoding="utf-8")

    loaded = load_hyde_index(path)

    assert loaded is not None
    assert loaded.documents == []


async def test_save_replaces_existing_file_without_leftovers(tmp_path: Path) -> None:
    store = await _built_hyde_store()
    path = tmp_path / "hyde_index.json"
    path.write_text("old", encoding="utf-8")

    save_hyde_index(store, path)

    assert json.loads(path.read_text(encoding="utf-8"))
    assert [p.name for p in tmp_path.iterdir()] == ["hyde_index.json"]
