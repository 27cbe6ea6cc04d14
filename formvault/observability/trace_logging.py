"""Structured trace/event logging.

One JSON object per line so export runs are easy to grep and ship. Events
describe observable actions: export started, file skipped, export finished.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from formvault.observability.redaction import sanitize
from formvault.observability.trace_context import get_trace_id


_logger = logging.getLogger("formvault.trace")


def trace_event(
    event: str,
    *,
    max_chars: int = 2000,
    **fields: Any,
) -> None:
    """Emit a structured trace event.

    Args:
        event: Short event name, e.g. 'export.csv.start'.
        max_chars: Max chars for any string field after sanitization.
        **fields: Event payload (will be sanitized).
    """

    record: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "trace_id": get_trace_id(),
    }

    for k, v in fields.items():
        record[k] = sanitize(v, max_chars=max_chars)

    level = logging.WARNING if ".error" in event or "error" in fields else logging.INFO
    try:
        _logger.log(level, json.dumps(record, ensure_ascii=False, separators=(",", ":")))
    except (TypeError, ValueError):
        _logger.log(level, '{"event":"%s","error":"failed_to_serialize"}', event)
