from __future__ import annotations

"""SQL audit storage for hypothetical documents produced by HyDE searches."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError

from src.rag.types import HypotheticalDocument


class AuditStoreError(RuntimeError):
    """Raised when audit storage fails."""
    pass


@dataclass(frozen=True)
class HypotheticalDocumentRecord:
    """Row read back from the audit table."""
    id: str
    original_query: str
    generated_text: str
    task_instruction: str
    fallback: bool
    embedding_dimension: int
    created_at: datetime


class HypotheticalDocumentAuditStore:
    """Persist hypothetical documents to a SQL database."""
    def __init__(self, connection_uri: str) -> None:
        """Initialize the audit store and ensure tables exist."""
        self._engine = create_engine(connection_uri)
        self._metadata = MetaData()
        self._table = Table(
            "hypothetical_documents",
            self._metadata,
            Column("id", String(36), primary_key=True),
            Column("original_query", Text, nullable=False),
            Column("generated_text", Text, nullable=False),
            Column("task_instruction", Text, nullable=True),
            Column("fallback", Integer, nullable=False, default=0),
            Column("embedding_dimension", Integer, nullable=False),
            Column("created_at", DateTime(timezone=True), nullable=False),
        )
        try:
            self._metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise AuditStoreError(f"Unable to initialize audit store: {exc}") from exc

    def record(self, document: HypotheticalDocument) -> str:
        """Insert a hypothetical document row and return its ID."""
        record_id = str(uuid.uuid4())
        payload: dict[str, Any] = {
            "id": record_id,
            "original_query": document.original_query,
            "generated_text": document.text,
            "task_instruction": str(document.context.get("task_instruction") or ""),
            "fallback": 1 if document.context.get("fallback") else 0,
            "embedding_dimension": len(document.embedding),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(self._table.insert().values(**payload))
        except SQLAlchemyError as exc:
            raise AuditStoreError(f"Unable to record hypothetical document: {exc}") from exc
        return record_id

    def list_recent(self, limit: int = 20) -> list[HypotheticalDocumentRecord]:
        """Return the most recent rows, newest first."""
        query = (
            select(self._table)
            .order_by(self._table.c.created_at.desc())
            .limit(limit)
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as exc:
            raise AuditStoreError(f"Unable to read audit store: {exc}") from exc
        return [
            HypotheticalDocumentRecord(
                id=row["id"],
                original_query=row["original_query"],
                generated_text=row["generated_text"],
                task_instruction=row["task_instruction"] or "",
                fallback=bool(row["fallback"]),
                embedding_dimension=row["embedding_dimension"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
