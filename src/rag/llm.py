from __future__ import annotations

"""Text generation clients for hypothetical documents and questions."""

from dataclasses import dataclass
import logging
from typing import Any, Protocol, Sequence, Union

import httpx


class GenerationError(RuntimeError):
    """Raised when text generation requests fail or responses are invalid."""
    pass


logger = logging.getLogger(__name__)

Prompt = Union[str, Sequence[dict[str, str]]]


class TextGenerator(Protocol):
    """Protocol for single-turn text generation services."""

    async def generate(self, prompt: Prompt) -> str:
        """Return generated text for a prompt or a chat history."""
        raise NotImplementedError


def _as_messages(prompt: Prompt) -> list[dict[str, str]]:
    """Normalize a prompt string or chat history into chat messages."""
    if isinstance(prompt, str):
        return [{"role": "user", "content": prompt}]
    messages: list[dict[str, str]] = []
    for item in prompt:
        role = str(item.get("role", "user")).strip().lower()
        content = str(item.get("content", ""))
        if role not in {"user", "assistant", "system"}:
            role = "user"
        messages.append({"role": role, "content": content})
    if not messages:
        raise GenerationError("Prompt history is empty")
    return messages


async def _post_chat(
    url: str,
    payload: dict[str, Any],
    timeout: float,
    transport: httpx.AsyncBaseTransport | None,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
) -> dict[str, Any]:
    """POST a chat request and return the decoded JSON body."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, json=payload, headers=headers, params=params)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as exc:
        raise GenerationError(str(exc)) from exc
    except ValueError as exc:
        raise GenerationError("Generation response is not valid JSON") from exc
    if not isinstance(data, dict):
        raise GenerationError("Invalid generation response")
    return data


def _choice_content(data: dict[str, Any]) -> str:
    """Extract the first choice's message content from a chat completion."""
    choices = data.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise GenerationError("Invalid chat completion response")
    message = choices[0].get("message")
    if not isinstance(message, dict):
        raise GenerationError("Invalid chat completion response")
    content = message.get("content")
    if not isinstance(content, str):
        raise GenerationError("Invalid chat completion content")
    return content


@dataclass(frozen=True)
class OllamaGenerator:
    """Text generator backed by the Ollama chat API."""
    base_url: str
    model: str
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout: float = 60.0
    transport: httpx.AsyncBaseTransport | None = None

    async def generate(self, prompt: Prompt) -> str:
        """Generate text using Ollama."""
        payload = {
            "model": self.model,
            "messages": _as_messages(prompt),
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        data = await _post_chat(
            f"{self.base_url.rstrip('/')}/api/chat",
            payload,
            timeout=self.timeout,
            transport=self.transport,
        )
        message = data.get("message")
        if not isinstance(message, dict):
            raise GenerationError("Invalid Ollama response")
        content = message.get("content")
        if not isinstance(content, str):
            raise GenerationError("Invalid Ollama response")
        return content


@dataclass(frozen=True)
class OpenAIGenerator:
    """Text generator backed by OpenAI chat completions."""
    api_key: str
    base_url: str
    model: str
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout: float = 60.0
    transport: httpx.AsyncBaseTransport | None = None

    async def generate(self, prompt: Prompt) -> str:
        """Generate text using OpenAI chat completions."""
        payload = {
            "model": self.model,
            "messages": _as_messages(prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        data = await _post_chat(
            f"{self.base_url.rstrip('/')}/chat/completions",
            payload,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return _choice_content(data)


@dataclass(frozen=True)
class AzureOpenAIGenerator:
    """Text generator backed by an Azure OpenAI chat deployment."""
    endpoint: str
    api_key: str
    deployment: str
    api_version: str = "2024-06-01"
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout: float = 60.0
    transport: httpx.AsyncBaseTransport | None = None

    async def generate(self, prompt: Prompt) -> str:
        """Generate text using Azure OpenAI chat completions."""
        payload = {
            "messages": _as_messages(prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        data = await _post_chat(
            f"{self.endpoint.rstrip('/')}/openai/deployments/{self.deployment}/chat/completions",
            payload,
            timeout=self.timeout,
            transport=self.transport,
            headers={"api-key": self.api_key},
            params={"api-version": self.api_version},
        )
        return _choice_content(data)


def build_text_generator(
    provider: str,
    *,
    api_key_openai: str | None,
    openai_base_url: str,
    openai_model: str | None,
    azure_endpoint: str | None,
    azure_api_key: str | None,
    azure_deployment: str | None,
    azure_api_version: str,
    ollama_base_url: str,
    ollama_model: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
) -> OllamaGenerator | OpenAIGenerator | AzureOpenAIGenerator:
    """Factory for text generators based on provider."""
    normalized = provider.strip().lower()
    if normalized == "openai":
        if not api_key_openai:
            raise GenerationError("OPENAI_API_KEY is required for OpenAI provider")
        if not openai_model:
            raise GenerationError("OPENAI_CHAT_MODEL is required for OpenAI provider")
        return OpenAIGenerator(
            api_key=api_key_openai,
            base_url=openai_base_url.rstrip("/"),
            model=openai_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized in {"azure", "azure_openai"}:
        if not azure_endpoint or not azure_api_key:
            raise GenerationError(
                "AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are required for Azure provider"
            )
        if not azure_deployment:
            raise GenerationError("AZURE_OPENAI_DEPLOYMENT_NAME is required for Azure provider")
        return AzureOpenAIGenerator(
            endpoint=azure_endpoint.rstrip("/"),
            api_key=azure_api_key,
            deployment=azure_deployment,
            api_version=azure_api_version,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized not in {"", "ollama"}:
        logger.warning("unknown_llm_provider", extra={"provider": provider})
    return OllamaGenerator(
        base_url=ollama_base_url,
        model=ollama_model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=timeout,
    )
