"""Inbound query checks: caller identity, validation and prompt-injection scrubbing."""
from __future__ import annotations

import re
from typing import Any, Mapping

from .errors import QueryValidationError

UNKNOWN_CALLER = "unknown"

_TAG_RE = re.compile(r"<[^>]*>")
_OVERRIDE_RE = re.compile(r"\bignore\s+(?:above|previous|all)\b", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def client_identity(headers: Mapping[str, str]) -> str:
    """First hop of ``X-Forwarded-For``, else ``X-Real-IP``, else a sentinel."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (headers.get("x-real-ip") or "").strip()
    return real_ip or UNKNOWN_CALLER


def validate_query(value: Any, max_length: int) -> str:
    query = value.strip() if isinstance(value, str) else ""
    if not query:
        raise QueryValidationError("Query is required")
    if len(query) > max_length:
        raise QueryValidationError(f"Query is too long. Please keep it under {max_length} characters.")
    return query


def sanitize_query(query: str) -> str:
    """Strip tag-like fragments and instruction-override phrases before prompting.

    Runs of whitespace (including those left behind by the removals) are
    collapsed to single spaces; the wording of the query is otherwise untouched.
    """
    cleaned = _TAG_RE.sub("", query)
    cleaned = _OVERRIDE_RE.sub("", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def prepare_query(value: Any, max_length: int) -> str:
    """Validate then sanitize; a query that sanitizes to nothing is rejected too."""
    sanitized = sanitize_query(validate_query(value, max_length))
    if not sanitized:
        raise QueryValidationError("Query is required")
    return sanitized
