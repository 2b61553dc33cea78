from __future__ import annotations

"""Formatters that render search hits and products as model-ready context."""

from typing import Iterable

from src.rag.types import Product, SearchHit

NO_RESULTS_MESSAGE = "No relevant quantum project information found."
CONTEXT_SEPARATOR = "\n\n---\n\n"


def format_hit(hit: SearchHit) -> str:
    """Render one hit as a labeled context block."""
    return f"From {hit.project} - {hit.section}:\n{hit.content}"


def format_context(hits: Iterable[SearchHit]) -> str:
    """Join context blocks, or return the no-results sentinel for an empty list."""
    blocks = [format_hit(hit) for hit in hits]
    if not blocks:
        return NO_RESULTS_MESSAGE
    return CONTEXT_SEPARATOR.join(blocks)


def format_product(product: Product) -> str:
    return (
        f"Product: {product.name}, Category: {product.category}, "
        f"Price: {product.price}, Description: {product.description}"
    )


def format_product_results(products: list[Product]) -> str:
    """Render product lines followed by the result count."""
    lines = [format_product(product) for product in products]
    lines.append(f"Total results: {len(products)}")
    return "\n".join(lines) + "\n"


def shorten(text: str, limit: int = 100) -> str:
    """Truncate text for log display."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
