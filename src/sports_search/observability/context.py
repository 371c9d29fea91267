"""Context propagation for log correlation across async boundaries."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


# Per-task search context (search_id, span_id, search_type, ...)
search_context: ContextVar[dict | None] = ContextVar("search_context", default=None)


def generate_search_id() -> str:
    """Generate a 32-char hex search ID."""
    return uuid4().hex


def get_search_context() -> dict:
    """Current search context; empty outside of a search."""
    return dict(search_context.get() or {})


def update_span_id(span_id: str) -> None:
    """Update span_id while preserving the rest of the context."""
    ctx = search_context.get() or {}
    search_context.set({**ctx, "span_id": span_id})


@contextmanager
def bind_search_context(**values: object) -> Iterator[dict]:
    """Bind a fresh search id (plus ``values``) for the duration of the block."""
    ctx = {"search_id": generate_search_id(), **values}
    token = search_context.set(ctx)
    try:
        yield ctx
    finally:
        search_context.reset(token)
