"""Observability utilities (structured tracing, redaction)."""

from formvault.observability.redaction import redact_text, redact_url_secrets, sanitize
from formvault.observability.trace_context import get_trace_id, new_trace_id, set_trace
from formvault.observability.trace_logging import trace_event

__all__ = [
    "get_trace_id",
    "new_trace_id",
    "redact_text",
    "redact_url_secrets",
    "sanitize",
    "set_trace",
    "trace_event",
]
