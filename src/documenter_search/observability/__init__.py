"""Observability helpers: structured logging, tracing, and metrics."""

from documenter_search.observability.context import (
    correlation_fields,
    correlation_scope,
    get_trace_context,
    set_trace_context,
    trace_context,
)
from documenter_search.observability.logging import JsonFormatter, configure_logging
from documenter_search.observability.metrics import (
    INDEX_BUILD_LATENCY,
    INDEX_RECORD_COUNT,
    SEARCH_LATENCY,
    SEARCH_QUERIES,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from documenter_search.observability.tracing import create_span, get_tracer, init_tracing, search_span


__all__ = [
    "INDEX_BUILD_LATENCY",
    "INDEX_RECORD_COUNT",
    "SEARCH_LATENCY",
    "SEARCH_QUERIES",
    "JsonFormatter",
    "configure_logging",
    "correlation_fields",
    "correlation_scope",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "search_span",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
