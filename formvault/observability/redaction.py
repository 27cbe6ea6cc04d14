"""Redaction helpers to keep signed-URL tokens and credentials out of logs.

A signed or presigned URL is a bearer credential until it expires: whoever
holds the query string can read the object. Paths are kept, query secrets
are replaced.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any


_REPLACEMENT = "[REDACTED]"
_TRUNC_SUFFIX = "…(truncated)"


# Secret-ish key names in structured payloads.
_SECRET_KEY_RE = re.compile(
    r"(^|_)(password|secret|token|api[_-]?key|service[_-]?key|access[_-]?key|authorization|signature)($|_)",
    flags=re.IGNORECASE,
)

# Query parameters that turn a URL into a credential, raw or percent-encoded
# (a signed URL passed as a query value of another request).
_URL_SECRET_PARAM_RE = re.compile(
    r"(?P<key>(?:[?&]|%3F|%26)(?:token|X-Amz-Signature|X-Amz-Credential|X-Amz-Security-Token))"
    r"(?P<sep>=|%3D)(?P<value>(?:(?!%26)[^&\s\"'])+)",
    flags=re.IGNORECASE,
)

_SENSITIVE_VALUE_RES: list[re.Pattern[str]] = [
    # Bearer tokens in headers / logs
    re.compile(r"\bBearer\s+[A-Za-z0-9._\-]+", flags=re.IGNORECASE),
    # JWTs (Supabase service/anon keys)
    re.compile(r"\beyJ[A-Za-z0-9_\-]{8,}\.[A-Za-z0-9_\-]{8,}\.[A-Za-z0-9_\-]+"),
    # AWS access key id
    re.compile(r"\bAKIA[A-Z0-9]{16}\b"),
]


def _looks_sensitive_key(key: str) -> bool:
    return bool(_SECRET_KEY_RE.search(key))


def redact_url_secrets(text: str) -> str:
    """Replace secret query values in any URLs inside text."""
    return _URL_SECRET_PARAM_RE.sub(lambda m: f"{m.group('key')}{m.group('sep')}{_REPLACEMENT}", text)


def redact_text(text: str, *, max_chars: int = 4000) -> str:
    """Redact sensitive substrings in a text blob and truncate."""
    if text is None:
        return text

    out = redact_url_secrets(text)
    for rx in _SENSITIVE_VALUE_RES:
        out = rx.sub(_REPLACEMENT, out)

    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX

    return out


def sanitize(obj: Any, *, max_depth: int = 6, max_chars: int = 4000) -> Any:
    """Sanitize an object for logging.

    - Dict keys that look like secrets are redacted.
    - String values are scanned for sensitive substrings.
    - Deep structures are truncated by depth.
    """

    if max_depth <= 0:
        return "…"

    if obj is None or isinstance(obj, (int, float, bool)):
        return obj

    if isinstance(obj, bytes):
        return f"<bytes:{len(obj)}>"

    if isinstance(obj, str):
        return redact_text(obj, max_chars=max_chars)

    if isinstance(obj, Mapping):
        out: dict[str, Any] = {}
        for k, v in obj.items():
            ks = str(k)
            if _looks_sensitive_key(ks):
                out[ks] = _REPLACEMENT
            else:
                out[ks] = sanitize(v, max_depth=max_depth - 1, max_chars=max_chars)
        return out

    if isinstance(obj, Sequence):
        items = list(obj)
        if len(items) > 50:
            items = items[:50]
            items.append("…")
        return [sanitize(v, max_depth=max_depth - 1, max_chars=max_chars) for v in items]

    return redact_text(str(obj), max_chars=max_chars)
