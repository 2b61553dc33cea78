from __future__ import annotations

"""Search entry points that turn store results into SearchHit records."""

import logging
from typing import Iterable

from src.rag.formatters import shorten
from src.rag.prompts import PROJECTS_HYDE_TASK_INSTRUCTION
from src.rag.similarity import DEFAULT_TOP_K
from src.rag.types import EmbeddedDocument, HypotheticalQuestion, SearchHit
from src.vectorstore.hyde import HydeVectorStore
from src.vectorstore.hype import HypeVectorStore

logger = logging.getLogger(__name__)


def hit_from_document(document: EmbeddedDocument) -> SearchHit:
    return SearchHit(
        content=document.content,
        project=document.metadata.project,
        section=document.metadata.section,
        chunk_id=document.id,
    )


def hit_from_question(question: HypotheticalQuestion) -> SearchHit:
    return SearchHit(
        content=question.source_chunk_content,
        project=question.source_chunk_metadata.project,
        section=question.source_chunk_metadata.section,
        chunk_id=question.source_chunk_id,
        matched_question=question.question,
    )


def unique_chunk_questions(
    questions: Iterable[HypotheticalQuestion],
) -> list[HypotheticalQuestion]:
    """Keep the first (best ranked) question per source chunk."""
    seen: set[str] = set()
    unique: list[HypotheticalQuestion] = []
    for question in questions:
        if question.source_chunk_id in seen:
            continue
        seen.add(question.source_chunk_id)
        unique.append(question)
    return unique


async def search_hyde(
    store: HydeVectorStore,
    query: str,
    top_k: int = DEFAULT_TOP_K,
    task_instruction: str | None = PROJECTS_HYDE_TASK_INSTRUCTION,
) -> list[SearchHit]:
    """Search project documents through a hypothetical passage."""
    documents = await store.search(query, top_k=top_k, task_instruction=task_instruction)
    hits = [hit_from_document(document) for document in documents]
    for rank, hit in enumerate(hits, start=1):
        logger.debug(
            "hyde_hit",
            extra={"rank": rank, "project": hit.project, "section": hit.section},
        )
    return hits


async def search_hype(
    store: HypeVectorStore,
    query: str,
    top_k: int = DEFAULT_TOP_K,
) -> list[SearchHit]:
    """Search project chunks through their stored hypothetical questions.

    The top_k best questions are retrieved first and then collapsed to one hit
    per source chunk, so fewer than top_k hits can come back.
    """
    questions = unique_chunk_questions(await store.search(query, top_k=top_k))
    hits = [hit_from_question(question) for question in questions]
    for rank, hit in enumerate(hits, start=1):
        logger.debug(
            "hype_hit",
            extra={
                "rank": rank,
                "matched_question": shorten(hit.matched_question or ""),
                "project": hit.project,
                "section": hit.section,
            },
        )
    logger.info("hype_unique_chunks", extra={"chunks": len(hits)})
    return hits
