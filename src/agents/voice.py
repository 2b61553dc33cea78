from __future__ import annotations

"""Voice assistant tool definitions and dispatch for product search."""

from dataclasses import dataclass, field
import json
import logging
from typing import Any

from src.rag.formatters import format_product_results
from src.rag.prompts import VOICE_ASSISTANT_INSTRUCTIONS
from src.vectorstore.catalog import DEFAULT_CATALOG_TOP_K, ProductCatalogStore

logger = logging.getLogger(__name__)


class UnsupportedToolError(ValueError):
    """Raised when the assistant requests a tool that is not registered."""
    pass


class ToolArgumentsError(ValueError):
    """Raised when tool arguments are not a JSON object with the required fields."""
    pass


@dataclass(frozen=True)
class ToolDefinition:
    """Function tool exposed to the realtime model."""
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


SEARCH_TOOL = ToolDefinition(
    name="search",
    description="Search the product catalog for product information",
    parameters={
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": (
                    "The search query in a form of a statement e.g. "
                    "'The product is Miami themed'"
                ),
            }
        },
        "required": ["query"],
    },
)


def parse_tool_arguments(arguments_json: str) -> dict[str, Any]:
    """Decode a tool call's JSON arguments into a dict."""
    try:
        arguments = json.loads(arguments_json or "{}")
    except json.JSONDecodeError as exc:
        raise ToolArgumentsError(f"Tool arguments are not valid JSON: {exc}") from exc
    if not isinstance(arguments, dict):
        raise ToolArgumentsError("Tool arguments must be a JSON object")
    return arguments


@dataclass
class VoiceAssistant:
    """Retrieval side of the voice assistant: instructions, tools and dispatch."""
    catalog: ProductCatalogStore
    top_k: int = DEFAULT_CATALOG_TOP_K
    instructions: str = VOICE_ASSISTANT_INSTRUCTIONS

    @property
    def tools(self) -> list[ToolDefinition]:
        return [SEARCH_TOOL]

    def session_options(self) -> dict[str, Any]:
        """Return the instructions and tool list for a realtime session."""
        return {
            "instructions": self.instructions,
            "tools": [tool.to_dict() for tool in self.tools],
        }

    async def invoke_tool(self, name: str, arguments_json: str) -> str:
        """Run a tool call and return its text output."""
        if name != SEARCH_TOOL.name:
            raise UnsupportedToolError(f"Unsupported tool '{name}'")
        arguments = parse_tool_arguments(arguments_json)
        query = arguments.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ToolArgumentsError("The 'query' argument must be a non-empty string")
        return await self.search(query)

    async def search(self, query: str) -> str:
        products = await self.catalog.search(query, top_k=self.top_k)
        output = format_product_results(products)
        logger.info(
            "voice_search_tool",
            extra={"query_length": len(query), "results": len(products)},
        )
        return output
