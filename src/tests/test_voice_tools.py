from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.agents.voice import (
    SEARCH_TOOL,
    ToolArgumentsError,
    UnsupportedToolError,
    VoiceAssistant,
)
from src.tests.fakes import TableEmbedder
from src.vectorstore.catalog import ProductCatalogStore
from src.vectorstore.errors import PersistenceError

pytestmark = pytest.mark.anyio

PRODUCTS = [
    {
        "id": "1",
        "image_blob_path": "images/1.png",
        "name": "Miami Beach Ball",
        "category": "Balls",
        "price": "$15",
        "description": "Pink Miami themed beach ball",
        "image_vector": [0.0, 0.0],
        "description_vector": [1.0, 0.0],
    },
    {
        "id": "2",
        "image_blob_path": "images/2.png",
        "name": "Trail Shoe",
        "category": "Footwear",
        "price": "$120",
        "description": "Grippy running shoe",
        "image_vector": None,
        "description_vector": [0.0, 1.0],
    },
    {
        "id": "3",
        "image_blob_path": "",
        "name": "Legacy Racket",
        "category": "Rackets",
        "price": "$80",
        "description": "Wrong dimension vector",
        "description_vector": [1.0, 0.0, 0.0],
    },
    {
        "id": "4",
        "name": "Unindexed Cap",
        "category": "Hats",
        "price": "$10",
        "description": "No vector yet",
        "description_vector": None,
    },
]


def _embedder() -> TableEmbedder:
    return TableEmbedder(
        table={"The product is Miami themed": [0.9, 0.1]},
        default=[0.5, 0.5],
    )


async def _assistant(tmp_path: Path, top_k: int = 5) -> VoiceAssistant:
    path = tmp_path / "metadata_structured.json"
    path.write_text(json.dumps(PRODUCTS), encoding="utf-8")
    catalog = await ProductCatalogStore.load(path, _embedder())
    return VoiceAssistant(catalog=catalog, top_k=top_k)


async def test_catalog_search_ranks_and_skips_unindexed(tmp_path: Path) -> None:
    assistant = await _assistant(tmp_path)

    products = await assistant.catalog.search("The product is Miami themed")

    assert [product.id for product in products] == ["1", "2", "3"]
    assert products[0].image_blob_path == "images/1.png"


async def test_invoke_search_tool_renders_products(tmp_path: Path) -> None:
    assistant = await _assistant(tmp_path, top_k=2)

    output = await assistant.invoke_tool(
        "search", json.dumps({"query": "The product is Miami themed"})
    )

    assert output.splitlines() == [
        "Product: Miami Beach Ball, Category: Balls, Price: $15, Description: Pink Miami themed beach ball",
        "Product: Trail Shoe, Category: Footwear, Price: $120, Description: Grippy running shoe",
        "Total results: 2",
    ]


async def test_unknown_tool_is_rejected(tmp_path: Path) -> None:
    assistant = await _assistant(tmp_path)

    with pytest.raises(UnsupportedToolError):
        await assistant.invoke_tool("weather", "{}")


@pytest.mark.parametrize("arguments", ["not json", "[]", "{}", '{"query": "  "}'])
async def test_bad_tool_arguments_are_rejected(tmp_path: Path, arguments: str) -> None:
    assistant = await _assistant(tmp_path)

    with pytest.raises(ToolArgumentsError):
        await assistant.invoke_tool("search", arguments)


async def test_session_options_expose_search_tool(tmp_path: Path) -> None:
    assistant = await _assistant(tmp_path)

    options = assistant.session_options()

    assert "'search' tool" in options["instructions"]
    assert options["tools"] == [SEARCH_TOOL.to_dict()]
    assert options["tools"][0]["parameters"]["required"] == ["query"]


async def test_missing_catalog_raises_persistence_error(tmp_path: Path) -> None:
    with pytest.raises(PersistenceError):
        await ProductCatalogStore.load(tmp_path / "missing.json", _embedder())
