"""Correlation ids shared by log records and spans.

Each CLI invocation is one *run*. It gets a trace id when it starts, plus
labels such as the command name. Every span opened inside the run swaps in
its own span id for as long as it is current, so log lines can be matched to
the span that produced them.
"""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4


run_context: ContextVar[dict[str, str] | None] = ContextVar("docsite_search_run", default=None)

ID_KEYS = frozenset({"trace_id", "span_id"})


def new_trace_id() -> str:
    """32 hex chars, the width OpenTelemetry uses for trace ids."""
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def start_run(command: str, **labels: str) -> dict[str, str]:
    """Begin a run with a fresh trace id, replacing any run already active."""
    ctx = {"trace_id": new_trace_id(), "span_id": new_span_id(), "command": command, **labels}
    run_context.set(ctx)
    return ctx


def current_run() -> dict[str, str]:
    """Return the active run, starting an unlabelled one on first use."""
    ctx = run_context.get()
    if not ctx or not ctx.get("trace_id"):
        ctx = {"trace_id": new_trace_id(), "span_id": new_span_id()}
        run_context.set(ctx)
    return ctx


def run_labels() -> dict[str, str]:
    """Labels of the active run without its ids."""
    return {key: value for key, value in current_run().items() if key not in ID_KEYS}


def enter_span(span_id: str) -> str | None:
    """Make ``span_id`` current and return the one it replaces."""
    ctx = current_run()
    previous = ctx.get("span_id")
    run_context.set({**ctx, "span_id": span_id})
    return previous
