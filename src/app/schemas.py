from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=0, le=20)
    task_instruction: str | None = None


class SearchResult(BaseModel):
    content: str
    project: str
    section: str
    chunk_id: str
    matched_question: str | None = None


class SearchResponse(BaseModel):
    strategy: Literal["hyde", "hype"]
    results: list[SearchResult]
    context: str
    message: str | None = None
    request_id: str
    hypothetical_document: str | None = None


class ToolInvokeRequest(BaseModel):
    name: str = Field(min_length=1)
    arguments: str = "{}"


class ToolInvokeResponse(BaseModel):
    output: str


class ToolListResponse(BaseModel):
    instructions: str
    tools: list[dict[str, Any]]


class StatsResponse(BaseModel):
    document_count: int
    question_count: int
    hypothetical_document_count: int
    embedding_dimension: int


class EmbeddingHealthResponse(BaseModel):
    provider: str
    model: str | None
    configured_dimension: int
    expected_dimension: int | None = None
    ok: bool
    status: str
    detail: str | None = None
    action: str | None = None


class HypotheticalDocumentAuditEntry(BaseModel):
    id: str
    original_query: str
    generated_text: str
    task_instruction: str
    fallback: bool
    embedding_dimension: int
    created_at: datetime


class HypotheticalDocumentAuditResponse(BaseModel):
    documents: list[HypotheticalDocumentAuditEntry]
