from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from src.app.settings import settings

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
SEARCH_COUNT = Counter(
    "rag_search_total",
    "Total retrieval searches",
    ["strategy"],
)
SEARCH_LATENCY = Histogram(
    "rag_search_duration_seconds",
    "Retrieval search duration in seconds",
    ["strategy"],
)
GENERATION_FALLBACK_COUNT = Counter(
    "rag_generation_fallback_total",
    "Searches that fell back to the raw query after a failed generation",
    ["strategy"],
)


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled:
        return await call_next(request)
    path = request.url.path
    if path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        duration = time.monotonic() - start
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)


def record_search(strategy: str, duration: float, fallback: bool = False) -> None:
    if not settings.metrics_enabled:
        return
    SEARCH_COUNT.labels(strategy).inc()
    SEARCH_LATENCY.labels(strategy).observe(duration)
    if fallback:
        GENERATION_FALLBACK_COUNT.labels(strategy).inc()


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
