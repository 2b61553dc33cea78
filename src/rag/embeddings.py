from __future__ import annotations

"""Embedding providers and configuration validation."""

import hashlib
import math
import re
from dataclasses import dataclass, field
from typing import Protocol, Sequence

import httpx
from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class EmbeddingError(RuntimeError):
    """Raised when embeddings fail or are invalid."""
    pass


class EmbeddingConfigError(RuntimeError):
    """Raised when embedding configuration is invalid."""
    pass


class EmbeddingProvider(Protocol):
    """Protocol for embedding providers."""
    dimension: int

    async def embed(self, text: str) -> list[float]:
        """Return an embedding vector for the provided text."""
        raise NotImplementedError

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one embedding per text, in input order."""
        raise NotImplementedError


def validate_vector(vector: list[float], dimension: int) -> list[float]:
    """Validate and normalize embedding vectors."""
    if len(vector) != dimension:
        raise EmbeddingError(
            f"Embedding dimension mismatch: expected {dimension}, got {len(vector)}"
        )
    cleaned: list[float] = []
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingError("Embedding contains a non-numeric value")
        if not math.isfinite(value):
            raise EmbeddingError("Embedding contains a non-finite value")
        cleaned.append(float(value))
    return cleaned


@dataclass
class HashEmbedder:
    """Deterministic hash-based embedder for testing or offline use."""
    dimension: int = 256

    async def embed(self, text: str) -> list[float]:
        """Embed text using token hashing and L2 normalization."""
        return self._embed_sync(text)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed each text in order."""
        return [self._embed_sync(text) for text in texts]

    def _embed_sync(self, text: str) -> list[float]:
        tokens = _TOKEN_RE.findall(text.lower())
        if not tokens:
            return validate_vector([0.0] * self.dimension, self.dimension)
        vector = [0.0] * self.dimension
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            idx = int.from_bytes(digest[:4], "big") % self.dimension
            vector[idx] += 1.0
        return validate_vector(self._l2_normalize(vector), self.dimension)

    def _l2_normalize(self, vector: list[float]) -> list[float]:
        """Normalize vector magnitude to 1.0."""
        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0.0:
            return vector
        return [value / norm for value in vector]


def resolve_openai_dimension(model: str) -> int | None:
    """Return expected dimension for OpenAI embedding model."""
    mapping = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }
    return mapping.get(model)


@dataclass(frozen=True)
class EmbeddingConfigReport:
    """Validation report for embedding settings."""
    provider: str
    model: str | None
    configured_dimension: int
    expected_dimension: int | None
    ok: bool
    status: str
    detail: str | None = None
    action: str | None = None


def build_embedding_config_report(
    provider: str, model: str | None, dimension: int
) -> EmbeddingConfigReport:
    """Build a validation report for embedding settings."""
    normalized = provider.lower().strip()

    if normalized in {"", "hash"}:
        if dimension <= 0:
            return EmbeddingConfigReport(
                provider="hash",
                model=None,
                configured_dimension=dimension,
                expected_dimension=None,
                ok=False,
                status="error",
                detail="EMBEDDING_DIMENSION must be greater than zero for hash embeddings.",
                action="Set EMBEDDING_DIMENSION to a positive integer.",
            )
        return EmbeddingConfigReport(
            provider="hash",
            model=None,
            configured_dimension=dimension,
            expected_dimension=dimension,
            ok=True,
            status="ok",
        )

    if normalized in {"openai", "azure"}:
        model_variable = (
            "OPENAI_EMBEDDING_MODEL"
            if normalized == "openai"
            else "AZURE_OPENAI_EMBEDDING_DEPLOYMENT_NAME"
        )
        if not model:
            return EmbeddingConfigReport(
                provider=normalized,
                model=None,
                configured_dimension=dimension,
                expected_dimension=None,
                ok=False,
                status="error",
                detail=f"{model_variable} is required for {normalized} embeddings.",
                action=f"Set {model_variable} in .env.",
            )
        expected = resolve_openai_dimension(model)
        if dimension <= 0:
            if expected is not None:
                return EmbeddingConfigReport(
                    provider=normalized,
                    model=model,
                    configured_dimension=dimension,
                    expected_dimension=expected,
                    ok=False,
                    status="error",
                    detail="EMBEDDING_DIMENSION is missing for the configured model.",
                    action=f"Set EMBEDDING_DIMENSION to {expected}.",
                )
            return EmbeddingConfigReport(
                provider=normalized,
                model=model,
                configured_dimension=dimension,
                expected_dimension=None,
                ok=False,
                status="error",
                detail="EMBEDDING_DIMENSION must be set for the configured model.",
                action="Set EMBEDDING_DIMENSION based on the model documentation.",
            )
        if expected is not None and dimension != expected:
            return EmbeddingConfigReport(
                provider=normalized,
                model=model,
                configured_dimension=dimension,
                expected_dimension=expected,
                ok=False,
                status="error",
                detail="EMBEDDING_DIMENSION does not match the model dimension.",
                action=f"Set EMBEDDING_DIMENSION to {expected}.",
            )
        if expected is None:
            return EmbeddingConfigReport(
                provider=normalized,
                model=model,
                configured_dimension=dimension,
                expected_dimension=None,
                ok=True,
                status="warning",
                detail="Model dimension cannot be auto-validated. Confirm EMBEDDING_DIMENSION manually.",
            )
        return EmbeddingConfigReport(
            provider=normalized,
            model=model,
            configured_dimension=dimension,
            expected_dimension=expected,
            ok=True,
            status="ok",
        )

    return EmbeddingConfigReport(
        provider=normalized,
        model=model,
        configured_dimension=dimension,
        expected_dimension=None,
        ok=False,
        status="error",
        detail="Unsupported embedding provider.",
        action="Set EMBEDDING_PROVIDER to hash, openai, or azure.",
    )


def _resolve_dimension(model: str, dimension: int) -> int:
    """Validate a configured dimension against the known model dimension."""
    resolved = resolve_openai_dimension(model)
    if dimension <= 0:
        if resolved is None:
            raise EmbeddingConfigError(
                "EMBEDDING_DIMENSION must be set when the embedding model is unknown"
            )
        return resolved
    if resolved is not None and dimension != resolved:
        raise EmbeddingConfigError(f"EMBEDDING_DIMENSION should be {resolved} for model {model}")
    return dimension


def _build_http_client(
    timeout: float, transport: httpx.AsyncBaseTransport | None
) -> httpx.AsyncClient | None:
    """Return an httpx client for the SDK only when a custom transport is set."""
    if transport is None:
        return None
    return httpx.AsyncClient(timeout=timeout, transport=transport)


async def _create_embeddings(
    client: AsyncOpenAI, model: str, texts: Sequence[str], dimension: int
) -> list[list[float]]:
    """Call the embeddings endpoint and return validated vectors in input order."""
    if not texts:
        return []
    try:
        response = await client.embeddings.create(
            model=model,
            input=list(texts),
            encoding_format="float",
        )
    except OpenAIError as exc:
        raise EmbeddingError(str(exc)) from exc

    items = getattr(response, "data", None)
    if not isinstance(items, list) or not items:
        raise EmbeddingError("Embedding response missing data")
    if len(items) != len(texts):
        raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(items)}")
    ordered = sorted(items, key=lambda item: getattr(item, "index", 0) or 0)
    vectors: list[list[float]] = []
    for item in ordered:
        embedding = getattr(item, "embedding", None)
        if not isinstance(embedding, list):
            raise EmbeddingError("Embedding response missing embedding vector")
        vectors.append(validate_vector(list(embedding), dimension))
    return vectors


@dataclass
class OpenAIEmbedder:
    """Embedding provider using the OpenAI embeddings API."""
    api_key: str
    model: str
    dimension: int
    base_url: str = "https://api.openai.com/v1"
    timeout: float = 30.0
    max_retries: int = 2
    transport: httpx.AsyncBaseTransport | None = None
    client: AsyncOpenAI = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate OpenAI configuration and create a client."""
        if not self.api_key:
            raise EmbeddingConfigError("OPENAI_API_KEY is required for OpenAIEmbedder")
        if not self.model:
            raise EmbeddingConfigError("OPENAI_EMBEDDING_MODEL is required for OpenAIEmbedder")
        self.dimension = _resolve_dimension(self.model, self.dimension)
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url.rstrip("/"),
            timeout=self.timeout,
            max_retries=self.max_retries,
            http_client=_build_http_client(self.timeout, self.transport),
        )

    async def embed(self, text: str) -> list[float]:
        """Embed text using the OpenAI embeddings API."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts in a single request."""
        return await _create_embeddings(self.client, self.model, texts, self.dimension)


@dataclass
class AzureOpenAIEmbedder:
    """Embedding provider using an Azure OpenAI embedding deployment."""
    endpoint: str
    api_key: str
    deployment: str
    dimension: int
    api_version: str = "2024-06-01"
    timeout: float = 30.0
    max_retries: int = 2
    transport: httpx.AsyncBaseTransport | None = None
    client: AsyncAzureOpenAI = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate Azure OpenAI configuration and create a client."""
        if not self.endpoint or not self.api_key:
            raise EmbeddingConfigError(
                "AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are required for AzureOpenAIEmbedder"
            )
        if not self.deployment:
            raise EmbeddingConfigError(
                "AZURE_OPENAI_EMBEDDING_DEPLOYMENT_NAME is required for AzureOpenAIEmbedder"
            )
        self.dimension = _resolve_dimension(self.deployment, self.dimension)
        self.endpoint = self.endpoint.rstrip("/")
        self.client = AsyncAzureOpenAI(
            azure_endpoint=self.endpoint,
            api_key=self.api_key,
            api_version=self.api_version,
            timeout=self.timeout,
            max_retries=self.max_retries,
            http_client=_build_http_client(self.timeout, self.transport),
        )

    async def embed(self, text: str) -> list[float]:
        """Embed text using the Azure OpenAI embeddings API."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts in a single request against the deployment."""
        return await _create_embeddings(self.client, self.deployment, texts, self.dimension)
