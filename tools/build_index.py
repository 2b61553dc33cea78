from __future__ import annotations

"""CLI utility to build and persist the HyDE and HyPE indexes."""

import argparse
import asyncio
import logging
from pathlib import Path

from src.app.dependencies import build_embedder, build_generator
from src.app.settings import settings
from src.loaders.markdown import load_project_chunks
from src.rag.pipeline import ensure_hyde_index, ensure_hype_index


async def _build(args: argparse.Namespace) -> None:
    chunks = load_project_chunks(Path(args.projects))
    print(f"Loaded {len(chunks)} chunks from {args.projects}")
    embedder = build_embedder()
    generator = build_generator()
    data_dir = Path(args.data_dir)

    if args.strategy in {"hyde", "both"}:
        hyde = await ensure_hyde_index(
            chunks,
            data_dir / settings.hyde_index_file,
            embedder,
            generator,
            rebuild=args.rebuild,
        )
        print(f"HyDE index: {len(hyde.documents)} documents")

    if args.strategy in {"hype", "both"}:
        hype = await ensure_hype_index(
            chunks,
            data_dir / settings.hype_index_file,
            embedder,
            generator,
            index_delay=args.delay,
            rebuild=args.rebuild,
        )
        print(
            f"HyPE index: {len(hype.questions)} questions "
            f"across {len(hype.indexed_chunk_ids())} chunks"
        )


def main() -> None:
    """Build the configured indexes, reusing existing files unless --rebuild is set."""
    parser = argparse.ArgumentParser(description="Build HyDE/HyPE retrieval indexes.")
    parser.add_argument(
        "--strategy",
        choices=["hyde", "hype", "both"],
        default="both",
        help="Which index to build.",
    )
    parser.add_argument(
        "--projects",
        default=settings.projects_path,
        help="Markdown corpus with '# Project' headings.",
    )
    parser.add_argument(
        "--data-dir",
        default=settings.data_dir,
        help="Directory holding the index files.",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=settings.hype_index_delay,
        help="Seconds to wait between HyPE question generation calls.",
    )
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Ignore existing index files and rebuild from the corpus.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if not Path(args.projects).exists():
        raise SystemExit(f"Corpus file not found: {args.projects}")
    asyncio.run(_build(args))


if __name__ == "__main__":
    main()
