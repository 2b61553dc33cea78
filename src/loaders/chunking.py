from __future__ import annotations

"""Section chunking for the projects markdown corpus."""

import logging
import re

from src.rag.types import Chunk, ChunkMetadata

logger = logging.getLogger(__name__)

PROJECT_DELIMITER = "# Project"
SECTION_DELIMITER = "## "
OVERVIEW_SECTION = "Overview"

_PROJECT_SPLIT_RE = re.compile(rf"(?m)^{re.escape(PROJECT_DELIMITER)}")


def normalize_newlines(text: str) -> str:
    """Normalize Windows and old Mac line endings to '\\n'."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def project_name_from_heading(heading: str) -> str:
    """Derive a project name from a '# Project <name> (<note>)' heading line."""
    name = heading.strip()
    if name.startswith(PROJECT_DELIMITER):
        name = name[len(PROJECT_DELIMITER):]
    return name.split(" (", 1)[0].strip()


def split_projects(text: str) -> list[str]:
    """Split the corpus into project segments with the heading re-attached.

    Text before the first project heading is not part of any project and is
    dropped, as are whitespace-only segments.
    """
    segments = _PROJECT_SPLIT_RE.split(normalize_newlines(text))
    leading, rest = segments[0], segments[1:]
    if leading.strip():
        logger.debug("corpus_preamble_dropped", extra={"chars": len(leading.strip())})
    return [f"{PROJECT_DELIMITER}{segment}" for segment in rest if segment.strip()]


def split_sections(project_content: str) -> list[tuple[str, str]]:
    """Split one project segment into (section label, section content) pairs."""
    parts = [part for part in project_content.split(f"\n{SECTION_DELIMITER}") if part]
    sections: list[tuple[str, str]] = []
    for idx, part in enumerate(parts):
        if idx == 0:
            sections.append((OVERVIEW_SECTION, part.strip()))
            continue
        label = part.split("\n", 1)[0].strip()
        sections.append((label, f"{SECTION_DELIMITER}{part}".strip()))
    return sections


def chunk_projects(text: str) -> list[Chunk]:
    """Chunk a projects corpus into one labeled chunk per markdown section."""
    chunks: list[Chunk] = []
    for project_index, project_content in enumerate(split_projects(text)):
        heading = project_content.split("\n", 1)[0]
        project = project_name_from_heading(heading)
        for section_index, (section, content) in enumerate(split_sections(project_content)):
            chunks.append(
                Chunk(
                    id=f"project_{project_index}_section_{section_index}",
                    content=content,
                    metadata=ChunkMetadata(
                        project=project,
                        section=section,
                        project_index=project_index,
                        section_index=section_index,
                    ),
                )
            )
    logger.info("corpus_chunked", extra={"chunks": len(chunks)})
    return chunks
