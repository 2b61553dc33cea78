from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from src.agents.voice import VoiceAssistant
from src.app.settings import settings
from src.loaders.markdown import load_project_chunks
from src.metadata.audit import HypotheticalDocumentAuditStore
from src.rag.embeddings import (
    AzureOpenAIEmbedder,
    EmbeddingConfigError,
    EmbeddingConfigReport,
    EmbeddingProvider,
    HashEmbedder,
    OpenAIEmbedder,
    build_embedding_config_report,
)
from src.rag.llm import TextGenerator, build_text_generator
from src.rag.pipeline import ensure_hyde_index, ensure_hype_index
from src.rag.types import Chunk
from src.vectorstore.catalog import ProductCatalogStore
from src.vectorstore.hyde import HydeVectorStore
from src.vectorstore.hype import HypeVectorStore

logger = logging.getLogger(__name__)


@dataclass
class StoreRegistry:
    """Lazily built stores shared by all requests."""
    embedder: EmbeddingProvider
    generator: TextGenerator
    projects_path: Path
    hyde_index_path: Path
    hype_index_path: Path
    catalog_path: Path
    hype_index_delay: float = 0.5
    catalog_top_k: int = 5
    _hyde: HydeVectorStore | None = field(default=None, init=False, repr=False)
    _hype: HypeVectorStore | None = field(default=None, init=False, repr=False)
    _voice: VoiceAssistant | None = field(default=None, init=False, repr=False)
    _chunks: list[Chunk] | None = field(default=None, init=False, repr=False)
    _corpus_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _hyde_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _hype_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _voice_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def _corpus(self) -> list[Chunk]:
        async with self._corpus_lock:
            if self._chunks is None:
                if self.projects_path.exists():
                    self._chunks = await asyncio.to_thread(load_project_chunks, self.projects_path)
                else:
                    logger.warning("corpus_missing", extra={"path": str(self.projects_path)})
                    self._chunks = []
            return self._chunks

    async def hyde_store(self) -> HydeVectorStore:
        async with self._hyde_lock:
            if self._hyde is None:
                self._hyde = await ensure_hyde_index(
                    await self._corpus(),
                    self.hyde_index_path,
                    self.embedder,
                    self.generator,
                )
            return self._hyde

    async def hype_store(self) -> HypeVectorStore:
        async with self._hype_lock:
            if self._hype is None:
                self._hype = await ensure_hype_index(
                    await self._corpus(),
                    self.hype_index_path,
                    self.embedder,
                    self.generator,
                    index_delay=self.hype_index_delay,
                )
            return self._hype

    async def voice_assistant(self) -> VoiceAssistant:
        async with self._voice_lock:
            if self._voice is None:
                catalog = await ProductCatalogStore.load(self.catalog_path, self.embedder)
                self._voice = VoiceAssistant(catalog=catalog, top_k=self.catalog_top_k)
            return self._voice

    def stats(self) -> dict[str, int | None]:
        hyde_stats = self._hyde.stats() if self._hyde else {}
        hype_stats = self._hype.stats() if self._hype else {}
        return {
            "document_count": int(hyde_stats.get("document_count") or 0),
            "question_count": int(hype_stats.get("question_count") or 0),
            "hypothetical_document_count": int(
                hyde_stats.get("hypothetical_document_count") or 0
            ),
            "embedding_dimension": self.embedder.dimension,
        }


@lru_cache
def get_registry() -> StoreRegistry:
    return StoreRegistry(
        embedder=build_embedder(),
        generator=build_generator(),
        projects_path=Path(settings.projects_path),
        hyde_index_path=settings.hyde_index_path,
        hype_index_path=settings.hype_index_path,
        catalog_path=Path(settings.catalog_path),
        hype_index_delay=settings.hype_index_delay,
        catalog_top_k=settings.catalog_top_k,
    )


def reset_registry_cache() -> None:
    get_registry.cache_clear()


@lru_cache
def get_audit_store() -> HypotheticalDocumentAuditStore | None:
    if not settings.audit_db_uri:
        return None
    return HypotheticalDocumentAuditStore(settings.audit_db_uri)


def get_embedding_config_report() -> EmbeddingConfigReport:
    return build_embedding_config_report(
        settings.embedding_provider, settings.embedding_model, settings.embedding_dimension
    )


def build_embedder() -> EmbeddingProvider:
    provider = settings.embedding_provider.lower().strip()
    if provider == "hash":
        return HashEmbedder(dimension=settings.embedding_dimension)
    if provider == "openai":
        return OpenAIEmbedder(
            api_key=settings.openai_api_key or "",
            model=settings.openai_embedding_model or "",
            dimension=settings.embedding_dimension,
            base_url=settings.openai_base_url,
            timeout=settings.embedding_timeout,
        )
    if provider == "azure":
        return AzureOpenAIEmbedder(
            endpoint=settings.azure_endpoint or "",
            api_key=settings.azure_api_key or "",
            deployment=settings.azure_embedding_deployment,
            dimension=settings.embedding_dimension,
            api_version=settings.azure_api_version,
            timeout=settings.embedding_timeout,
        )
    raise EmbeddingConfigError(f"Unsupported embedding provider: {provider}")


def build_generator() -> TextGenerator:
    return build_text_generator(
        settings.llm_provider,
        api_key_openai=settings.openai_api_key,
        openai_base_url=settings.openai_base_url,
        openai_model=settings.openai_chat_model,
        azure_endpoint=settings.azure_endpoint,
        azure_api_key=settings.azure_api_key,
        azure_deployment=settings.azure_deployment,
        azure_api_version=settings.azure_api_version,
        ollama_base_url=settings.ollama_base_url,
        ollama_model=settings.ollama_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout,
    )
