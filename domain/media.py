"""
Domain: listing media URLs (pure).

Stored media columns arrive as a JSON array, a JSON-encoded string, a single
string, or null depending on which client wrote them. They are normalized at
the repository boundary into one canonical type, an ordered tuple of unique
http(s) URLs, and never carried past it in any other shape.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional, Tuple

from .validation import parse_http_url

MAX_MEDIA_ITEMS: int = 8

MediaUrls = Tuple[str, ...]


def _coerce_sequence(value: Any) -> Iterable[Any]:
    if not value:
        return ()
    if isinstance(value, (list, tuple)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                return ()
            return parsed if isinstance(parsed, list) else ()
        return (text,)
    return ()


def normalize_media_urls(value: Any, max_items: int = MAX_MEDIA_ITEMS) -> MediaUrls:
    """
    Canonical ordered media list.

    Keeps the first occurrence of each valid http(s) URL, drops anything else,
    and stops at max_items.
    """

    seen: set[str] = set()
    urls: list[str] = []
    for item in _coerce_sequence(value):
        url = parse_http_url(item)
        if url is None or url in seen:
            continue
        seen.add(url)
        urls.append(url)
        if len(urls) >= max_items:
            break
    return tuple(urls)


def select_primary_image(
    approved_media_urls: MediaUrls,
    media_urls: MediaUrls,
    image_url: Optional[str] = None,
) -> Optional[str]:
    """First approved item, else first submitted item, else the legacy image_url."""

    if approved_media_urls:
        return approved_media_urls[0]
    if media_urls:
        return media_urls[0]
    return parse_http_url(image_url)


__all__ = [
    "MAX_MEDIA_ITEMS",
    "MediaUrls",
    "normalize_media_urls",
    "select_primary_image",
]
