"""Observability helpers: structured logging, tracing spans and Prometheus metrics."""

from docsite_search.observability.context import current_run, start_run
from docsite_search.observability.logging import JsonFormatter, configure_logging
from docsite_search.observability.metrics import (
    INDEX_BUILD_ERRORS,
    INDEX_DOC_COUNT,
    INDEX_LOADS,
    SEARCH_LATENCY,
    SEARCH_QUERIES,
    track_latency,
    write_metrics,
)
from docsite_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_BUILD_ERRORS",
    "INDEX_DOC_COUNT",
    "INDEX_LOADS",
    "SEARCH_LATENCY",
    "SEARCH_QUERIES",
    "JsonFormatter",
    "configure_logging",
    "create_span",
    "current_run",
    "get_tracer",
    "init_tracing",
    "start_run",
    "track_latency",
    "write_metrics",
]
