from __future__ import annotations

"""HyPE store: index-time hypothetical questions matched against user queries."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from src.rag.embeddings import EmbeddingError, EmbeddingProvider
from src.rag.llm import GenerationError, TextGenerator
from src.rag.prompts import build_question_prompt
from src.rag.questions import parse_questions
from src.rag.similarity import DEFAULT_TOP_K, rank_with_scores
from src.rag.types import Chunk, ChunkMetadata, HypotheticalQuestion
from src.vectorstore.errors import NotConfiguredError

logger = logging.getLogger(__name__)

DEFAULT_INDEX_DELAY = 0.5


@dataclass
class HypeVectorStore:
    """In-memory store of questions generated for each chunk.

    All generation happens while indexing. A search embeds the raw query and
    ranks it against the stored question embeddings, so query time costs one
    embedding call and no generation.
    """
    embedder: EmbeddingProvider | None = None
    generator: TextGenerator | None = None
    questions: list[HypotheticalQuestion] = field(default_factory=list)
    index_delay: float = DEFAULT_INDEX_DELAY

    def configure(self, embedder: EmbeddingProvider, generator: TextGenerator) -> None:
        """Bind the embedding and text generation services."""
        self.embedder = embedder
        self.generator = generator

    @property
    def dimension(self) -> int | None:
        for question in self.questions:
            if question.embedding:
                return len(question.embedding)
        return None

    def indexed_chunk_ids(self) -> set[str]:
        return {question.source_chunk_id for question in self.questions}

    def _require_embedder(self) -> EmbeddingProvider:
        if self.embedder is None:
            raise NotConfiguredError("Embedding service not set. Call configure() first.")
        return self.embedder

    def _require_generator(self) -> TextGenerator:
        if self.generator is None:
            raise NotConfiguredError("Text generation service not set. Call configure() first.")
        return self.generator

    async def generate_hypothetical_questions(
        self, content: str, metadata: ChunkMetadata
    ) -> list[str]:
        """Ask the generator for up to five questions this chunk answers.

        Generation failures are logged and produce an empty list.
        """
        generator = self._require_generator()
        prompt = build_question_prompt(content, metadata.project, metadata.section)
        try:
            response = await generator.generate(prompt)
        except GenerationError as exc:
            logger.warning(
                "hype_question_generation_failed",
                extra={
                    "project": metadata.project,
                    "section": metadata.section,
                    "detail": str(exc),
                },
            )
            return []
        questions = parse_questions(response)
        logger.debug(
            "hype_questions_generated",
            extra={
                "project": metadata.project,
                "section": metadata.section,
                "count": len(questions),
            },
        )
        return questions

    async def add_documents_with_hype(self, chunks: Iterable[Chunk]) -> int:
        """Generate, embed and store questions for each chunk, one chunk at a time.

        Chunks already present in the store are skipped. A chunk whose
        generation yields nothing, or whose embedding fails, contributes no
        records. Returns the number of question records added.
        """
        embedder = self._require_embedder()
        self._require_generator()
        indexed = self.indexed_chunk_ids()
        added = 0
        processed = 0
        for chunk in chunks:
            if chunk.id in indexed:
                logger.debug("hype_chunk_already_indexed", extra={"chunk_id": chunk.id})
                continue
            processed += 1
            questions = await self.generate_hypothetical_questions(chunk.content, chunk.metadata)
            if questions:
                added += await self._store_questions(embedder, chunk, questions)
            else:
                logger.warning("hype_chunk_skipped", extra={"chunk_id": chunk.id})
            indexed.add(chunk.id)
            if self.index_delay > 0:
                await asyncio.sleep(self.index_delay)
        logger.info(
            "hype_documents_indexed",
            extra={"chunks": processed, "added": added, "total": len(self.questions)},
        )
        return added

    async def _store_questions(
        self, embedder: EmbeddingProvider, chunk: Chunk, questions: list[str]
    ) -> int:
        try:
            embeddings = await embedder.embed_batch(questions)
        except EmbeddingError as exc:
            logger.warning(
                "hype_question_embedding_failed",
                extra={"chunk_id": chunk.id, "detail": str(exc)},
            )
            return 0
        if len(embeddings) != len(questions):
            logger.warning(
                "hype_embedding_count_mismatch",
                extra={
                    "chunk_id": chunk.id,
                    "questions": len(questions),
                    "embeddings": len(embeddings),
                },
            )
            return 0
        for question, embedding in zip(questions, embeddings):
            self.questions.append(
                HypotheticalQuestion(
                    question=question,
                    embedding=embedding,
                    source_chunk_id=chunk.id,
                    source_chunk_content=chunk.content,
                    source_chunk_metadata=chunk.metadata,
                )
            )
        return len(questions)

    def search_by_question_similarity(
        self, query_embedding: list[float], top_k: int = DEFAULT_TOP_K
    ) -> list[HypotheticalQuestion]:
        """Rank stored questions against a query embedding."""
        ranked = rank_with_scores(query_embedding, self.questions, top_k)
        logger.debug(
            "hype_questions_ranked",
            extra={
                "results": len(ranked),
                "top_scores": [round(score, 4) for _, score in ranked],
            },
        )
        return [question for question, _ in ranked]

    async def search(
        self, query: str, top_k: int = DEFAULT_TOP_K
    ) -> list[HypotheticalQuestion]:
        """Embed the query and return the best matching question records."""
        embedder = self._require_embedder()
        if top_k < 0:
            raise ValueError("top_k must be >= 0")
        query_embedding = await embedder.embed(query)
        return self.search_by_question_similarity(query_embedding, top_k)

    def stats(self) -> dict[str, int | str | None]:
        """Return basic stats for the store."""
        return {
            "backend": "hype",
            "question_count": len(self.questions),
            "chunk_count": len(self.indexed_chunk_ids()),
            "embedding_dimension": self.dimension,
        }
