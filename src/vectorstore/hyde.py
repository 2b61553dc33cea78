from __future__ import annotations

"""HyDE store: query-time hypothetical passages matched against real documents."""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from src.rag.embeddings import EmbeddingError, EmbeddingProvider
from src.rag.llm import GenerationError, TextGenerator
from src.rag.prompts import build_hyde_prompt
from src.rag.similarity import DEFAULT_TOP_K, rank_with_scores
from src.rag.types import Chunk, EmbeddedDocument, HypotheticalDocument
from src.vectorstore.errors import NotConfiguredError

logger = logging.getLogger(__name__)


@dataclass
class HydeVectorStore:
    """In-memory document store searched through hypothetical documents.

    Indexing embeds the real chunks only. At query time the text generator
    writes a passage that would answer the query, the passage is embedded,
    and documents are ranked by similarity to that passage. The query itself
    never touches the corpus.
    """
    embedder: EmbeddingProvider | None = None
    generator: TextGenerator | None = None
    documents: list[EmbeddedDocument] = field(default_factory=list)
    hypothetical_documents: list[HypotheticalDocument] = field(default_factory=list)

    def configure(self, embedder: EmbeddingProvider, generator: TextGenerator) -> None:
        """Bind the embedding and text generation services."""
        self.embedder = embedder
        self.generator = generator

    @property
    def dimension(self) -> int | None:
        """Embedding length shared by indexed documents, if any are embedded."""
        for document in self.documents:
            if document.embedding:
                return len(document.embedding)
        return None

    def _require_embedder(self) -> EmbeddingProvider:
        if self.embedder is None:
            raise NotConfiguredError("Embedding service not set. Call configure() first.")
        return self.embedder

    def _require_generator(self) -> TextGenerator:
        if self.generator is None:
            raise NotConfiguredError("Text generation service not set. Call configure() first.")
        return self.generator

    async def add_documents(self, documents: Iterable[Chunk | EmbeddedDocument]) -> int:
        """Embed documents that lack an embedding and append them to the store."""
        embedder = self._require_embedder()
        added = 0
        for item in documents:
            document = item if isinstance(item, EmbeddedDocument) else EmbeddedDocument(chunk=item)
            if document.embedding is None:
                try:
                    document.embedding = await embedder.embed(document.content)
                except EmbeddingError as exc:
                    logger.warning(
                        "hyde_document_embedding_failed",
                        extra={"chunk_id": document.id, "detail": str(exc)},
                    )
            expected = self.dimension
            if document.embedding and expected is not None and len(document.embedding) != expected:
                logger.warning(
                    "hyde_dimension_mismatch",
                    extra={
                        "chunk_id": document.id,
                        "expected": expected,
                        "actual": len(document.embedding),
                    },
                )
            self.documents.append(document)
            added += 1
        logger.info(
            "hyde_documents_indexed",
            extra={"added": added, "total": len(self.documents)},
        )
        return added

    async def generate_hypothetical_document(
        self, query: str, task_instruction: str | None = None
    ) -> str:
        """Generate a passage answering the query, or return the query on failure."""
        text, _ = await self._generate_passage(query, task_instruction)
        return text

    async def _generate_passage(
        self, query: str, task_instruction: str | None
    ) -> tuple[str, bool]:
        """Return (passage, fell_back)."""
        generator = self._require_generator()
        prompt = build_hyde_prompt(query, task_instruction)
        try:
            passage = (await generator.generate(prompt)).strip()
        except GenerationError as exc:
            logger.warning(
                "hyde_generation_failed",
                extra={"query_length": len(query), "detail": str(exc)},
            )
            return query, True
        if not passage:
            logger.warning("hyde_generation_empty", extra={"query_length": len(query)})
            return query, True
        logger.debug(
            "hyde_passage_generated",
            extra={"query_length": len(query), "passage_length": len(passage)},
        )
        return passage, False

    async def search(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        task_instruction: str | None = None,
    ) -> list[EmbeddedDocument]:
        """Rank indexed documents against a hypothetical answer to the query."""
        embedder = self._require_embedder()
        if top_k < 0:
            raise ValueError("top_k must be >= 0")
        passage, fell_back = await self._generate_passage(query, task_instruction)
        embedding = await embedder.embed(passage)
        ranked = rank_with_scores(embedding, self.documents, top_k)
        self.hypothetical_documents.append(
            HypotheticalDocument(
                text=passage,
                embedding=embedding,
                original_query=query,
                context={"task_instruction": task_instruction or "", "fallback": fell_back},
            )
        )
        logger.info(
            "hyde_search_complete",
            extra={
                "results": len(ranked),
                "fallback": fell_back,
                "top_scores": [round(score, 4) for _, score in ranked],
                "top_sections": [
                    f"{doc.metadata.project}/{doc.metadata.section}" for doc, _ in ranked
                ],
            },
        )
        return [document for document, _ in ranked]

    def stats(self) -> dict[str, int | str | None]:
        """Return basic stats for the store."""
        return {
            "backend": "hyde",
            "document_count": len(self.documents),
            "embedded_count": sum(1 for doc in self.documents if doc.embedding),
            "hypothetical_document_count": len(self.hypothetical_documents),
            "embedding_dimension": self.dimension,
        }
