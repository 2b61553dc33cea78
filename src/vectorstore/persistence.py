from __future__ import annotations

"""JSON persistence for the HyDE and HyPE indexes.

HyDE files hold one object per document with the keys ``Id``, ``Content``,
``Metadata`` and ``EmbeddingArray`` (null for documents that were never
embedded). HyPE files hold one object per question with the keys
``question``, ``question_embedding``, ``original_chunk_id``,
``original_chunk_content`` and ``original_chunk_metadata``.

Loading never raises for a bad file: a missing, unreadable or malformed
index comes back as ``None`` so callers rebuild from the corpus.
"""

import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Any

from src.rag.embeddings import EmbeddingProvider
from src.rag.llm import TextGenerator
from src.rag.types import Chunk, ChunkMetadata, EmbeddedDocument, HypotheticalQuestion
from src.vectorstore.errors import PersistenceError
from src.vectorstore.hyde import HydeVectorStore
from src.vectorstore.hype import DEFAULT_INDEX_DELAY, HypeVectorStore

logger = logging.getLogger(__name__)


def _write_json_atomic(path: Path, payload: list[dict[str, Any]]) -> None:
    """Write JSON to a sibling temp file, then swap it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json_list(path: Path) -> list[Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise PersistenceError("Index file must contain a JSON array")
    return data


def _vector_from_json(value: Any, *, allow_null: bool) -> list[float] | None:
    if value is None and allow_null:
        return None
    if not isinstance(value, list) or not value:
        raise PersistenceError("Embedding must be a non-empty array of numbers")
    vector: list[float] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise PersistenceError("Embedding contains a non-numeric value")
        if not math.isfinite(item):
            raise PersistenceError("Embedding contains a non-finite value")
        vector.append(float(item))
    return vector


def _required_str(entry: dict[str, Any], key: str) -> str:
    value = entry[key]
    if not isinstance(value, str):
        raise PersistenceError(f"{key} must be a string")
    return value


def _document_to_json(document: EmbeddedDocument) -> dict[str, Any]:
    return {
        "Id": document.id,
        "Content": document.content,
        "Metadata": document.metadata.to_dict(),
        "EmbeddingArray": document.embedding,
    }


def _document_from_json(entry: Any) -> EmbeddedDocument:
    if not isinstance(entry, dict):
        raise PersistenceError("Document entry must be an object")
    chunk = Chunk(
        id=_required_str(entry, "Id"),
        content=_required_str(entry, "Content"),
        metadata=ChunkMetadata.from_dict(entry["Metadata"]),
    )
    return EmbeddedDocument(
        chunk=chunk,
        embedding=_vector_from_json(entry.get("EmbeddingArray"), allow_null=True),
    )


def _question_to_json(question: HypotheticalQuestion) -> dict[str, Any]:
    return {
        "question": question.question,
        "question_embedding": question.embedding,
        "original_chunk_id": question.source_chunk_id,
        "original_chunk_content": question.source_chunk_content,
        "original_chunk_metadata": question.source_chunk_metadata.to_dict(),
    }


def _question_from_json(entry: Any) -> HypotheticalQuestion:
    if not isinstance(entry, dict):
        raise PersistenceError("Question entry must be an object")
    embedding = _vector_from_json(entry["question_embedding"], allow_null=False) or []
    return HypotheticalQuestion(
        question=_required_str(entry, "question"),
        embedding=embedding,
        source_chunk_id=_required_str(entry, "original_chunk_id"),
        source_chunk_content=_required_str(entry, "original_chunk_content"),
        source_chunk_metadata=ChunkMetadata.from_dict(entry["original_chunk_metadata"]),
    )


def _decode_entries(raw: list[Any], decode, kind: str, path: Path) -> list[Any]:
    """Decode every entry, dropping the ones that do not match the schema."""
    records = []
    skipped = 0
    for entry in raw:
        try:
            records.append(decode(entry))
        except (PersistenceError, KeyError, TypeError, ValueError) as exc:
            skipped += 1
            logger.debug("index_entry_invalid", extra={"kind": kind, "detail": str(exc)})
    if skipped:
        logger.warning(
            "index_entries_skipped",
            extra={"kind": kind, "path": str(path), "skipped": skipped},
        )
    return records


def save_hyde_index(store: HydeVectorStore, path: Path) -> int:
    """Persist the HyDE document list. Returns the number of records written."""
    payload = [_document_to_json(document) for document in store.documents]
    _write_json_atomic(path, payload)
    logger.info("index_saved", extra={"kind": "hyde", "path": str(path), "records": len(payload)})
    return len(payload)


def load_hyde_index(
    path: Path,
    embedder: EmbeddingProvider | None = None,
    generator: TextGenerator | None = None,
) -> HydeVectorStore | None:
    """Load a HyDE store from disk, or return None when the file is unusable."""
    if not path.exists():
        logger.info("index_missing", extra={"kind": "hyde", "path": str(path)})
        return None
    try:
        raw = _read_json_list(path)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, PersistenceError) as exc:
        logger.warning(
            "index_load_failed",
            extra={"kind": "hyde", "path": str(path), "detail": str(exc)},
        )
        return None
    documents = _decode_entries(raw, _document_from_json, "hyde", path)
    store = HydeVectorStore(embedder=embedder, generator=generator, documents=documents)
    logger.info("index_loaded", extra={"kind": "hyde", "path": str(path), "records": len(documents)})
    return store


def save_hype_index(store: HypeVectorStore, path: Path) -> int:
    """Persist the HyPE question list. Returns the number of records written."""
    payload = [_question_to_json(question) for question in store.questions]
    _write_json_atomic(path, payload)
    logger.info("index_saved", extra={"kind": "hype", "path": str(path), "records": len(payload)})
    return len(payload)


def load_hype_index(
    path: Path,
    embedder: EmbeddingProvider | None = None,
    generator: TextGenerator | None = None,
    index_delay: float = DEFAULT_INDEX_DELAY,
) -> HypeVectorStore | None:
    """Load a HyPE store from disk, or return None when the file is unusable."""
    if not path.exists():
        logger.info("index_missing", extra={"kind": "hype", "path": str(path)})
        return None
    try:
        raw = _read_json_list(path)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, PersistenceError) as exc:
        logger.warning(
            "index_load_failed",
            extra={"kind": "hype", "path": str(path), "detail": str(exc)},
        )
        return None
    questions = _decode_entries(raw, _question_from_json, "hype", path)
    store = HypeVectorStore(
        embedder=embedder,
        generator=generator,
        questions=questions,
        index_delay=index_delay,
    )
    logger.info("index_loaded", extra={"kind": "hype", "path": str(path), "records": len(questions)})
    return store
