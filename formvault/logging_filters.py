"""Logging helpers and filters.

Applied from every entrypoint (`python -m formvault.main` and
`uvicorn formvault.asgi:app`).
"""

from __future__ import annotations

import logging
import sys

from formvault.observability.redaction import redact_url_secrets


class RedactSignedUrlTokens(logging.Filter):
    """Mask signed-URL query tokens in log records.

    The record message is rendered once, redacted, and stored back with
    empty args so downstream handlers see the safe text.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Never break logging.
            return True

        redacted = redact_url_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


class SuppressHealthCheckAccessLog(logging.Filter):
    """Drop Uvicorn access log records for the health check endpoint."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2])
            if path == "/health" or path.startswith("/health?"):
                return False
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once and install the filters.

    Safe to call multiple times.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level.upper(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=[logging.StreamHandler(sys.stdout)],
        )
    else:
        root.setLevel(level.upper())

    for handler in root.handlers:
        if not any(isinstance(f, RedactSignedUrlTokens) for f in handler.filters):
            handler.addFilter(RedactSignedUrlTokens())

    # Suppress verbose per-request logs from the HTTP client
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)

    access_logger = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, SuppressHealthCheckAccessLog) for f in access_logger.filters):
        access_logger.addFilter(SuppressHealthCheckAccessLog())
    # uvicorn.access does not propagate; query strings land in its own handler.
    if not any(isinstance(f, RedactSignedUrlTokens) for f in access_logger.filters):
        access_logger.addFilter(RedactSignedUrlTokens())
