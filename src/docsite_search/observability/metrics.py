"""Prometheus metrics for index builds and interactive search."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


INDEX_DOC_COUNT = Gauge(
    "docsite_search_index_document_count",
    "Documents in the most recently built search index",
)

INDEX_BUILD_ERRORS = Counter(
    "docsite_search_index_build_errors_total",
    "Content files skipped because they could not be read",
    ["reason"],
)

INDEX_LOADS = Counter(
    "docsite_search_index_loads_total",
    "Search index load attempts",
    ["status"],
)

SEARCH_QUERIES = Counter(
    "docsite_search_queries_total",
    "Search queries evaluated",
    ["outcome"],
)

SEARCH_LATENCY = Histogram(
    "docsite_search_query_latency_seconds",
    "Fuzzy query latency",
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        target = histogram.labels(**labels) if labels else histogram
        target.observe(time.perf_counter() - start)


def write_metrics(path: Path) -> Path:
    """Write the metrics for a node-exporter textfile collector.

    The file is replaced atomically, so a collector never reads a partial scrape.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
    return path
