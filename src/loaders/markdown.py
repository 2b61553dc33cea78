from __future__ import annotations

"""Markdown corpus loader for indexing."""

from pathlib import Path

from src.loaders.chunking import chunk_projects
from src.rag.types import Chunk


def load_project_chunks(path: Path) -> list[Chunk]:
    """Load a projects markdown file from disk and chunk it by section."""
    content = path.read_text(encoding="utf-8")
    return chunk_projects(content)
