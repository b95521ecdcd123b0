"""Tests for logging, tracing and metrics helpers."""

import json
import logging
import sys

from prometheus_client import Histogram
import pytest

from docsite_search.observability.context import current_run, enter_span, run_context, run_labels, start_run
from docsite_search.observability.logging import JsonFormatter, configure_logging
from docsite_search.observability.metrics import track_latency, write_metrics
from docsite_search.observability.tracing import create_span


@pytest.fixture(autouse=True)
def isolated_run_context():
    token = run_context.set(None)
    yield
    run_context.reset(token)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("docsite_search.search.indexer", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRunContext:
    def test_start_run_sets_fresh_ids_and_labels(self):
        first = start_run("build")
        second = start_run("query", session="s-1")

        assert first["trace_id"] != second["trace_id"]
        assert len(second["trace_id"]) == 32
        assert len(second["span_id"]) == 16
        assert run_labels() == {"command": "query", "session": "s-1"}

    def test_current_run_starts_unlabelled_run(self):
        ctx = current_run()

        assert set(ctx) == {"trace_id", "span_id"}
        assert current_run() is ctx

    def test_enter_span_returns_previous(self):
        ctx = start_run("build")

        previous = enter_span("f" * 16)

        assert previous == ctx["span_id"]
        assert current_run()["span_id"] == "f" * 16
        assert current_run()["trace_id"] == ctx["trace_id"]


class TestJsonFormatter:
    def test_carries_run_ids_and_labels(self):
        ctx = start_run("build")

        entry = json.loads(JsonFormatter().format(_record()))

        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "docsite_search.search.indexer"
        assert entry["trace_id"] == ctx["trace_id"]
        assert entry["span_id"] == ctx["span_id"]
        assert entry["command"] == "build"

    def test_includes_extras_and_redacts_credentials(self):
        entry = json.loads(JsonFormatter().format(_record(documents=4, skip_dirs=frozenset({"b", "a"}), token="abc")))

        assert entry["documents"] == 4
        assert entry["skip_dirs"] == ["a", "b"]
        assert entry["token"] == "[REDACTED]"
        assert "args" not in entry

    def test_truncates_long_messages(self):
        entry = json.loads(JsonFormatter().format(_record("x" * 5000)))

        assert len(entry["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_formats_exceptions(self):
        try:
            raise ValueError("bad page")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))

        assert "ValueError: bad page" in entry["exception"]


def test_configure_logging_installs_single_stderr_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("debug", json_output=True, logger_levels={"docsite_search.search": "warning"})
        configure_logging("debug", json_output=True)

        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("docsite_search.search").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("docsite_search.search").setLevel(logging.NOTSET)


class TestCreateSpan:
    def test_span_id_is_current_inside_block_and_restored_after(self):
        ctx = start_run("build")

        with create_span("unit.test", attributes={"documents": 3}) as span:
            inner = format(span.get_span_context().span_id, "016x")
            assert current_run()["span_id"] == inner

        assert current_run()["span_id"] == ctx["span_id"]

    def test_exceptions_propagate(self):
        start_run("query")

        with pytest.raises(RuntimeError, match="boom"), create_span("unit.failure"):
            raise RuntimeError("boom")


def test_track_latency_observes_histogram():
    histogram = Histogram("docsite_search_test_latency_seconds", "test histogram", registry=None)

    with track_latency(histogram):
        pass

    samples = {sample.name: sample.value for sample in histogram.collect()[0].samples}
    assert samples["docsite_search_test_latency_seconds_count"] == 1.0


def test_write_metrics_creates_textfile(tmp_path):
    path = write_metrics(tmp_path / "metrics" / "docsite_search.prom")

    text = path.read_text(encoding="utf-8")
    assert "docsite_search_index_document_count" in text
    assert "docsite_search_queries_total" in text
