"""Per-request correlation state (trace ids and project alias)."""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class RequestContext:
    trace_id: str
    span_id: str
    project: str | None = None


_current: ContextVar[RequestContext | None] = ContextVar("graphql_hub_request_context", default=None)


def new_trace_id() -> str:
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def current_context() -> RequestContext:
    """Context of the running task; one is minted on first access."""
    ctx = _current.get()
    if ctx is None:
        ctx = RequestContext(trace_id=new_trace_id(), span_id=new_span_id())
        _current.set(ctx)
    return ctx


def start_request_context(trace_id: str | None = None) -> RequestContext:
    """Begin a fresh context, continuing ``trace_id`` when the caller sent one."""
    ctx = RequestContext(trace_id=trace_id or new_trace_id(), span_id=new_span_id())
    _current.set(ctx)
    return ctx


def update_span_id(span_id: str) -> None:
    _current.set(replace(current_context(), span_id=span_id))


def bind_project(alias: str) -> None:
    """Tag log lines emitted for the rest of this request with ``alias``."""
    _current.set(replace(current_context(), project=alias))


def clear_context() -> None:
    _current.set(None)
