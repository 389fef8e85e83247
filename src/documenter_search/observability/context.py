"""Correlation context shared by log records and spans.

Every index build and query runs under a trace id and span id. Searches add
correlation fields (the query text, the requested page, and the engine's
index generation, which increases on every rebuild) so that log lines
emitted deep inside ranking can be tied back to the keystroke that caused
them. The context lives in a ``ContextVar``:
each asyncio task sees its own copy, so superseded keystroke queries never
leak fields into the query that replaced them.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any
from uuid import uuid4


if TYPE_CHECKING:
    from collections.abc import Generator


CORRELATION_FIELDS: tuple[str, ...] = ("query", "page", "index_id")

trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def generate_trace_id() -> str:
    """Generate a 32-char hex trace ID."""
    return uuid4().hex


def generate_span_id() -> str:
    """Generate a 16-char hex span ID."""
    return uuid4().hex[:16]


def get_trace_context() -> dict:
    """Return the current context, starting a new trace when none is active."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": generate_trace_id(), "span_id": generate_span_id()}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_span_id(span_id: str) -> None:
    """Update span_id while preserving trace_id and correlation fields."""
    ctx = trace_context.get() or {}
    trace_context.set({**ctx, "span_id": span_id})


def correlation_fields(ctx: dict | None = None) -> dict[str, Any]:
    """Return the correlation fields that are set in ``ctx`` (default: current context)."""
    source = get_trace_context() if ctx is None else ctx
    return {name: source[name] for name in CORRELATION_FIELDS if source.get(name) is not None}


@contextmanager
def correlation_scope(**fields: Any) -> Generator[dict, None, None]:
    """Bind correlation fields for the duration of a block.

    The previous context, including its span id, is restored on exit even if
    the block raises or the surrounding task is cancelled.
    """
    unknown = set(fields) - set(CORRELATION_FIELDS)
    if unknown:
        msg = f"Unknown correlation fields: {', '.join(sorted(unknown))}"
        raise ValueError(msg)
    token = trace_context.set({**get_trace_context(), **fields})
    try:
        yield trace_context.get()
    finally:
        trace_context.reset(token)
