from __future__ import annotations

"""FastAPI application entrypoint for the HyDE/HyPE retrieval service."""

import logging
import time
import uuid

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from src.agents.voice import ToolArgumentsError, UnsupportedToolError
from src.app.dependencies import (
    StoreRegistry,
    get_audit_store,
    get_embedding_config_report,
    get_registry,
)
from src.app.metrics import metrics_middleware, metrics_response, record_search
from src.app.schemas import (
    EmbeddingHealthResponse,
    HypotheticalDocumentAuditEntry,
    HypotheticalDocumentAuditResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
    StatsResponse,
    ToolInvokeRequest,
    ToolInvokeResponse,
    ToolListResponse,
)
from src.app.settings import settings
from src.metadata.audit import AuditStoreError, HypotheticalDocumentAuditStore
from src.rag.embeddings import EmbeddingConfigError, EmbeddingError
from src.rag.formatters import NO_RESULTS_MESSAGE, format_context
from src.rag.llm import GenerationError
from src.rag.prompts import PROJECTS_HYDE_TASK_INSTRUCTION
from src.rag.search import search_hyde, search_hype
from src.rag.types import HypotheticalDocument, SearchHit
from src.vectorstore.errors import NotConfiguredError, PersistenceError

logger = logging.getLogger(__name__)

app = FastAPI(title="HyDE HyPE Retrieval", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _safe_error_message(exc: Exception) -> str:
    """Return a safe error type name for logs and responses."""
    return type(exc).__name__


def _record_hypothetical_document(
    audit_store: HypotheticalDocumentAuditStore | None, document: HypotheticalDocument
) -> None:
    """Persist a hypothetical document if an audit store is configured."""
    if not audit_store:
        return
    try:
        audit_store.record(document)
    except AuditStoreError as exc:
        logger.warning("audit_record_failed", extra={"error": _safe_error_message(exc)})


def _search_response(
    strategy: str,
    hits: list[SearchHit],
    request: Request,
    hypothetical_document: str | None = None,
) -> SearchResponse:
    return SearchResponse(
        strategy=strategy,
        results=[
            SearchResult(
                content=hit.content,
                project=hit.project,
                section=hit.section,
                chunk_id=hit.chunk_id,
                matched_question=hit.matched_question,
            )
            for hit in hits
        ],
        context=format_context(hits),
        message=None if hits else NO_RESULTS_MESSAGE,
        request_id=request.state.request_id,
        hypothetical_document=hypothetical_document,
    )


@app.exception_handler(NotConfiguredError)
async def not_configured_handler(request: Request, exc: NotConfiguredError) -> JSONResponse:
    logger.error("store_not_configured", extra={"path": request.url.path})
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(EmbeddingConfigError)
@app.exception_handler(GenerationError)
async def provider_config_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "provider_config_invalid",
        extra={"path": request.url.path, "error": _safe_error_message(exc)},
    )
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("data_file_unavailable", extra={"path": request.url.path})
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for uptime monitoring."""
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def stats(registry: StoreRegistry = Depends(get_registry)) -> StatsResponse:
    """Return record counts for the stores built so far."""
    return StatsResponse(**registry.stats())


@app.get("/stats/embedding", response_model=EmbeddingHealthResponse)
async def embedding_health() -> EmbeddingHealthResponse:
    """Return embedding configuration health checks."""
    report = get_embedding_config_report()
    return EmbeddingHealthResponse(**report.__dict__)


@app.post("/search/hyde", response_model=SearchResponse)
async def search_hyde_endpoint(
    payload: SearchRequest,
    request: Request,
    registry: StoreRegistry = Depends(get_registry),
    audit_store: HypotheticalDocumentAuditStore | None = Depends(get_audit_store),
) -> SearchResponse:
    """Search project documents through a generated hypothetical passage."""
    top_k = settings.top_k if payload.top_k is None else payload.top_k
    store = await registry.hyde_store()
    start = time.monotonic()
    try:
        hits = await search_hyde(
            store,
            payload.query,
            top_k=top_k,
            task_instruction=payload.task_instruction or PROJECTS_HYDE_TASK_INSTRUCTION,
        )
    except EmbeddingError as exc:
        logger.warning(
            "hyde_search_failed",
            extra={"request_id": request.state.request_id, "error": _safe_error_message(exc)},
        )
        raise HTTPException(status_code=502, detail="Embedding service failed") from exc
    record = store.hypothetical_documents[-1]
    record_search("hyde", time.monotonic() - start, fallback=bool(record.context.get("fallback")))
    _record_hypothetical_document(audit_store, record)
    logger.info(
        "search_complete",
        extra={
            "request_id": request.state.request_id,
            "strategy": "hyde",
            "results": len(hits),
        },
    )
    return _search_response("hyde", hits, request, hypothetical_document=record.text)


@app.post("/search/hype", response_model=SearchResponse)
async def search_hype_endpoint(
    payload: SearchRequest,
    request: Request,
    registry: StoreRegistry = Depends(get_registry),
) -> SearchResponse:
    """Search project chunks by matching the query against stored questions."""
    top_k = settings.top_k if payload.top_k is None else payload.top_k
    store = await registry.hype_store()
    start = time.monotonic()
    try:
        hits = await search_hype(store, payload.query, top_k=top_k)
    except EmbeddingError as exc:
        logger.warning(
            "hype_search_failed",
            extra={"request_id": request.state.request_id, "error": _safe_error_message(exc)},
        )
        raise HTTPException(status_code=502, detail="Embedding service failed") from exc
    record_search("hype", time.monotonic() - start)
    logger.info(
        "search_complete",
        extra={
            "request_id": request.state.request_id,
            "strategy": "hype",
            "results": len(hits),
        },
    )
    return _search_response("hype", hits, request)


@app.get("/tools", response_model=ToolListResponse)
async def list_tools(registry: StoreRegistry = Depends(get_registry)) -> ToolListResponse:
    """Return the voice assistant instructions and tool definitions."""
    assistant = await registry.voice_assistant()
    return ToolListResponse(**assistant.session_options())


@app.post("/tools/invoke", response_model=ToolInvokeResponse)
async def invoke_tool(
    payload: ToolInvokeRequest,
    request: Request,
    registry: StoreRegistry = Depends(get_registry),
) -> ToolInvokeResponse:
    """Run a voice assistant tool call against the product catalog."""
    assistant = await registry.voice_assistant()
    try:
        output = await assistant.invoke_tool(payload.name, payload.arguments)
    except UnsupportedToolError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ToolArgumentsError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except EmbeddingError as exc:
        logger.warning(
            "tool_invoke_failed",
            extra={"request_id": request.state.request_id, "error": _safe_error_message(exc)},
        )
        raise HTTPException(status_code=502, detail="Embedding service failed") from exc
    return ToolInvokeResponse(output=output)


@app.get("/audit/hypothetical-documents", response_model=HypotheticalDocumentAuditResponse)
async def list_hypothetical_documents(
    limit: int = Query(default=20, ge=1, le=200),
    audit_store: HypotheticalDocumentAuditStore | None = Depends(get_audit_store),
) -> HypotheticalDocumentAuditResponse:
    """Return the most recent hypothetical documents generated by HyDE searches."""
    if audit_store is None:
        raise HTTPException(status_code=404, detail="Audit store is not configured")
    try:
        rows = audit_store.list_recent(limit=limit)
    except AuditStoreError as exc:
        logger.warning("audit_list_failed", extra={"error": _safe_error_message(exc)})
        raise HTTPException(status_code=503, detail="Audit store unavailable") from exc
    return HypotheticalDocumentAuditResponse(
        documents=[HypotheticalDocumentAuditEntry(**row.__dict__) for row in rows]
    )
