from __future__ import annotations

"""Index bootstrap: reuse a persisted index or build and save a new one."""

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from src.rag.embeddings import EmbeddingProvider
from src.rag.llm import TextGenerator
from src.rag.types import Chunk
from src.vectorstore.hyde import HydeVectorStore
from src.vectorstore.hype import DEFAULT_INDEX_DELAY, HypeVectorStore
from src.vectorstore.persistence import (
    load_hyde_index,
    load_hype_index,
    save_hyde_index,
    save_hype_index,
)

logger = logging.getLogger(__name__)


def _dimension_matches(strategy: str, stored: int | None, embedder: EmbeddingProvider) -> bool:
    if stored is None or stored == embedder.dimension:
        return True
    logger.warning(
        "index_dimension_mismatch",
        extra={"strategy": strategy, "stored": stored, "expected": embedder.dimension},
    )
    return False


async def ensure_hyde_index(
    chunks: Sequence[Chunk],
    path: Path,
    embedder: EmbeddingProvider,
    generator: TextGenerator,
    rebuild: bool = False,
) -> HydeVectorStore:
    """Return a HyDE store loaded from path, building and saving it when unusable."""
    if not rebuild:
        store = await asyncio.to_thread(load_hyde_index, path, embedder, generator)
        if (
            store is not None
            and store.documents
            and _dimension_matches("hyde", store.dimension, embedder)
        ):
            logger.info("hyde_index_reused", extra={"documents": len(store.documents)})
            return store
    store = HydeVectorStore(embedder=embedder, generator=generator)
    await store.add_documents(chunks)
    await asyncio.to_thread(save_hyde_index, store, path)
    logger.info("hyde_index_built", extra={"documents": len(store.documents), "path": str(path)})
    return store


async def ensure_hype_index(
    chunks: Sequence[Chunk],
    path: Path,
    embedder: EmbeddingProvider,
    generator: TextGenerator,
    index_delay: float = DEFAULT_INDEX_DELAY,
    rebuild: bool = False,
) -> HypeVectorStore:
    """Return a HyPE store loaded from path, building and saving it when unusable."""
    if not rebuild:
        store = await asyncio.to_thread(
            load_hype_index, path, embedder, generator, index_delay
        )
        if (
            store is not None
            and store.questions
            and _dimension_matches("hype", store.dimension, embedder)
        ):
            logger.info("hype_index_reused", extra={"questions": len(store.questions)})
            return store
    store = HypeVectorStore(embedder=embedder, generator=generator, index_delay=index_delay)
    await store.add_documents_with_hype(chunks)
    await asyncio.to_thread(save_hype_index, store, path)
    logger.info("hype_index_built", extra={"questions": len(store.questions), "path": str(path)})
    return store
