"""OpenTelemetry spans for index builds and queries.

Without ``init_tracing`` the global (no-op) provider is used, so spans cost
next to nothing in an embedding application that does not export traces.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from documenter_search.observability.context import CORRELATION_FIELDS, correlation_scope, update_span_id


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}

SEARCH_ATTRIBUTE_PREFIX = "search."


def init_tracing(
    service_name: str = "documenter-search",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Install an SDK tracer provider; callers attach their own span processors."""
    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = trace.get_tracer(__name__)
    logger.debug("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    if _tracer_holder["tracer"] is None:
        _tracer_holder["tracer"] = trace.get_tracer(__name__)
    return _tracer_holder["tracer"]  # type: ignore[return-value]


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Start a span and make its id the current log span id.

    Exceptions mark the span as failed and propagate.
    """
    with get_tracer().start_as_current_span(name, kind=kind, attributes=attributes) as span:
        ctx = span.get_span_context()
        if ctx.is_valid:
            update_span_id(format(ctx.span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise


@contextmanager
def search_span(name: str, **fields: Any) -> Generator[Span, None, None]:
    """Span plus log correlation for one search operation.

    ``fields`` become ``search.*`` span attributes. Those that are correlation
    fields (query, page, index_id) are also bound for log records emitted
    inside the block.
    """
    attributes = {f"{SEARCH_ATTRIBUTE_PREFIX}{key}": value for key, value in fields.items() if value is not None}
    correlated = {key: fields[key] for key in CORRELATION_FIELDS if key in fields}
    with correlation_scope(**correlated), create_span(name, attributes=attributes) as span:
        yield span
