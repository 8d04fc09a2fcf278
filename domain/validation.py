"""
Domain: request field sanitation (pure).

Small helpers shared by every service to trim, bound and validate user input
before it reaches the record store.
"""

from __future__ import annotations

import re
from typing import Any, Optional

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_PHONE_RE = re.compile(r"^\+\d{7,18}$")


def sanitize_text(value: Any, max_length: int) -> str:
    """Trimmed string truncated to max_length; non-strings become ''."""

    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def sanitize_email(value: Any, max_length: int = 180) -> str:
    return sanitize_text(value, max_length).lower()


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value.strip()))


def parse_int(value: Any, fallback: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return fallback


def clamp_int(value: Any, minimum: int, maximum: int, fallback: int) -> int:
    """Parse an integer query parameter and clamp it into [minimum, maximum]."""

    if value is None:
        return max(minimum, min(maximum, fallback))
    return max(minimum, min(maximum, parse_int(value, fallback)))


def parse_http_url(value: Any, max_length: int = 700) -> Optional[str]:
    """Return the trimmed URL if it is http(s), else None."""

    candidate = sanitize_text(value, max_length)
    if not candidate or not _HTTP_URL_RE.match(candidate):
        return None
    return candidate


def normalize_origin(value: Any) -> Optional[str]:
    """Origin without trailing slashes; only http(s) origins are accepted."""

    if not value:
        return None
    trimmed = str(value).strip().rstrip("/")
    if not _HTTP_URL_RE.match(trimmed):
        return None
    return trimmed


def parse_search_term(value: Any, max_length: int = 80) -> str:
    """Free-text search with PostgREST wildcard/separator characters removed."""

    return re.sub(r"[%_,()*]", "", sanitize_text(value, max_length))


def normalize_phone(value: Any) -> str:
    """
    Normalize a phone number to '+<digits>'.

    Example:
        normalize_phone("0033 6 12 34 56 78")  # '+33612345678'
    """

    raw = sanitize_text(value, 40)
    if not raw:
        return ""
    normalized = re.sub(r"[^\d+]", "", raw)
    if normalized.startswith("00"):
        normalized = "+" + normalized[2:]
    if not normalized.startswith("+"):
        normalized = "+" + normalized.replace("+", "")
    return normalized


def is_valid_phone(value: Any) -> bool:
    return isinstance(value, str) and bool(_PHONE_RE.match(value))


__all__ = [
    "sanitize_text",
    "sanitize_email",
    "is_valid_email",
    "parse_int",
    "clamp_int",
    "parse_http_url",
    "normalize_origin",
    "parse_search_term",
    "normalize_phone",
    "is_valid_phone",
]
