"""OpenTelemetry spans around index builds and index loads.

There is no exporter: spans exist so that log lines carry span ids and so
that an embedding application can attach its own span processor to the
provider returned by :func:`init_tracing`.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from docsite_search.observability.context import enter_span, run_labels


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

SERVICE_NAME = "docsite-search"

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(resource_attributes: dict[str, str] | None = None) -> TracerProvider:
    """Install a tracer provider for this process and return it."""
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME, **(resource_attributes or {})}))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = provider.get_tracer("docsite_search")
    logger.debug("Tracing initialized for %s", SERVICE_NAME)
    return provider


def get_tracer() -> Tracer:
    if _tracer_holder["tracer"] is None:
        init_tracing()
    return _tracer_holder["tracer"]  # type: ignore[return-value]


@contextmanager
def create_span(
    name: str,
    attributes: dict[str, Any] | None = None,
    kind: SpanKind = SpanKind.INTERNAL,
) -> Generator[Span, None, None]:
    """Open a span tagged with the run's labels.

    The span id is current in the logging context while the block runs and the
    enclosing span id is restored afterwards. Exceptions mark the span as
    failed and propagate.
    """
    span_attributes = {f"run.{key}": value for key, value in run_labels().items()}
    span_attributes.update(attributes or {})

    tracer = get_tracer()
    with tracer.start_as_current_span(
        name, kind=kind, attributes=span_attributes, record_exception=False, set_status_on_exception=False
    ) as span:
        previous = enter_span(format(span.get_span_context().span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
        finally:
            if previous is not None:
                enter_span(previous)
