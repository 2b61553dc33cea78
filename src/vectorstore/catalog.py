from __future__ import annotations

"""Product catalog store searched by the voice assistant."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from src.rag.embeddings import EmbeddingProvider
from src.rag.similarity import rank_with_scores
from src.rag.types import Product
from src.vectorstore.errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_TOP_K = 5


def _optional_vector(value: Any) -> list[float] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise PersistenceError("Product vector must be an array")
    return [float(item) for item in value]


def product_from_dict(data: dict[str, Any]) -> Product:
    """Build a Product from its snake_case JSON object."""
    return Product(
        id=str(data["id"]),
        name=str(data["name"]),
        category=str(data.get("category", "")),
        price=str(data.get("price", "")),
        description=str(data.get("description", "")),
        image_blob_path=str(data.get("image_blob_path") or ""),
        image_vector=_optional_vector(data.get("image_vector")),
        description_vector=_optional_vector(data.get("description_vector")),
    )


def read_products(path: Path) -> list[Product]:
    """Read a JSON array of products from disk."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PersistenceError(f"Unable to read product catalog {path}: {exc}") from exc
    if not isinstance(data, list):
        raise PersistenceError("Product catalog must contain a JSON array")
    try:
        return [product_from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Invalid product entry: {exc}") from exc


@dataclass
class ProductCatalogStore:
    """Products ranked by similarity between the query and their descriptions."""
    embedder: EmbeddingProvider
    products: list[Product] = field(default_factory=list)

    @classmethod
    async def load(cls, path: Path, embedder: EmbeddingProvider) -> ProductCatalogStore:
        products = await asyncio.to_thread(read_products, path)
        logger.info("catalog_loaded", extra={"path": str(path), "products": len(products)})
        return cls(embedder=embedder, products=products)

    async def search(self, query: str, top_k: int = DEFAULT_CATALOG_TOP_K) -> list[Product]:
        """Return the top_k products whose description vectors best match the query."""
        if top_k < 0:
            raise ValueError("top_k must be >= 0")
        query_embedding = await self.embedder.embed(query)
        ranked = rank_with_scores(
            query_embedding,
            self.products,
            top_k,
            vector_of=lambda product: product.description_vector,
        )
        logger.info(
            "catalog_search_complete",
            extra={"results": len(ranked), "top_ids": [product.id for product, _ in ranked]},
        )
        return [product for product, _ in ranked]
