from __future__ import annotations

"""Core data types for chunks, embeddings and hypothetical artifacts."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ChunkMetadata:
    """Project/section labels attached to every chunk."""
    project: str
    section: str
    project_index: int
    section_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project,
            "section": self.section,
            "project_index": self.project_index,
            "section_index": self.section_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChunkMetadata:
        """Build metadata from a mapping, raising on missing or mistyped keys."""
        project = data["project"]
        section = data["section"]
        project_index = data["project_index"]
        section_index = data["section_index"]
        if not isinstance(project, str) or not isinstance(section, str):
            raise TypeError("project and section must be strings")
        if isinstance(project_index, bool) or isinstance(section_index, bool):
            raise TypeError("indices must be integers")
        return cls(
            project=project,
            section=section,
            project_index=int(project_index),
            section_index=int(section_index),
        )


@dataclass(frozen=True)
class Chunk:
    """Labeled section of the corpus, the unit of indexing and retrieval."""
    id: str
    content: str
    metadata: ChunkMetadata


@dataclass
class EmbeddedDocument:
    """Chunk plus its document embedding (HyDE corpus entry)."""
    chunk: Chunk
    embedding: list[float] | None = None

    @property
    def id(self) -> str:
        return self.chunk.id

    @property
    def content(self) -> str:
        return self.chunk.content

    @property
    def metadata(self) -> ChunkMetadata:
        return self.chunk.metadata


@dataclass(frozen=True)
class HypotheticalDocument:
    """Passage generated for a query during HyDE search, kept for auditing."""
    text: str
    embedding: list[float]
    original_query: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HypotheticalQuestion:
    """Question generated for a chunk at HyPE indexing time."""
    question: str
    embedding: list[float]
    source_chunk_id: str
    source_chunk_content: str
    source_chunk_metadata: ChunkMetadata


@dataclass(frozen=True)
class SearchHit:
    """Search result returned to callers."""
    content: str
    project: str
    section: str
    chunk_id: str
    matched_question: str | None = None


@dataclass(frozen=True)
class Product:
    """Catalog entry searched by the voice assistant."""
    id: str
    name: str
    category: str
    price: str
    description: str
    image_blob_path: str = ""
    image_vector: list[float] | None = None
    description_vector: list[float] | None = None
