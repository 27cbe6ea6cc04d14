"""Trace context for correlating the log lines of one export run."""

from __future__ import annotations

import uuid
from contextvars import ContextVar


_trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def new_trace_id() -> str:
    return uuid.uuid4().hex


def set_trace(trace_id: str | None) -> None:
    """Set trace context for the current execution context."""
    _trace_id_var.set(trace_id)


def get_trace_id() -> str | None:
    return _trace_id_var.get()
