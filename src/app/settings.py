from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "hash")
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "256"))
    embedding_timeout: float = float(os.getenv("RAG_EMBEDDING_TIMEOUT", "30"))
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_embedding_model: str | None = os.getenv("OPENAI_EMBEDDING_MODEL")
    openai_chat_model: str | None = os.getenv("OPENAI_CHAT_MODEL")
    azure_endpoint: str | None = os.getenv("AZURE_OPENAI_ENDPOINT")
    azure_api_key: str | None = os.getenv("AZURE_OPENAI_API_KEY")
    azure_api_version: str = os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
    azure_deployment: str = os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", "gpt-4o-mini")
    azure_embedding_deployment: str = os.getenv(
        "AZURE_OPENAI_EMBEDDING_DEPLOYMENT_NAME", "text-embedding-ada-002"
    )
    llm_provider: str = os.getenv("RAG_LLM_PROVIDER", "ollama")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1")
    llm_temperature: float = float(os.getenv("RAG_LLM_TEMPERATURE", "0.7"))
    llm_max_tokens: int = int(os.getenv("RAG_LLM_MAX_TOKENS", "1000"))
    llm_timeout: float = float(os.getenv("RAG_LLM_TIMEOUT", "60"))
    projects_path: str = os.getenv("RAG_PROJECTS_PATH", "data/projects.md")
    data_dir: str = os.getenv("RAG_DATA_DIR", "data")
    hyde_index_file: str = os.getenv("RAG_HYDE_INDEX_FILE", "hyde_index.json")
    hype_index_file: str = os.getenv("RAG_HYPE_INDEX_FILE", "hype_index.json")
    top_k: int = int(os.getenv("RAG_TOP_K", "3"))
    hype_index_delay: float = float(os.getenv("RAG_HYPE_INDEX_DELAY", "0.5"))
    catalog_path: str = os.getenv("RAG_CATALOG_PATH", "data/metadata_structured.json")
    catalog_top_k: int = int(os.getenv("RAG_CATALOG_TOP_K", "5"))
    metrics_enabled: bool = _env_bool("RAG_METRICS_ENABLED", "true")
    audit_db_uri: str | None = os.getenv("RAG_AUDIT_DB_URI")

    @property
    def hyde_index_path(self) -> Path:
        return Path(self.data_dir) / self.hyde_index_file

    @property
    def hype_index_path(self) -> Path:
        return Path(self.data_dir) / self.hype_index_file

    @property
    def embedding_model(self) -> str | None:
        """Model or deployment name used by the configured embedding provider."""
        provider = self.embedding_provider.lower().strip()
        if provider == "openai":
            return self.openai_embedding_model
        if provider == "azure":
            return self.azure_embedding_deployment
        return None


settings = Settings()
