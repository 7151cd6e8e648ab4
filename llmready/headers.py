"""HTTP response headers for Markdown, index and sitemap responses."""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from email.utils import format_datetime

from llmready.settings import RESPONSE_MAX_AGE

logger = logging.getLogger(__name__)

_HEADER_NAME_RE = re.compile(r"^[A-Za-z0-9-]+$")
_HEADER_VALUE_BAD_RE = re.compile(r"[\r\n]")

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

NOT_FOUND_BODY = "# 404 Not Found\n"


def http_date(value: datetime) -> str:
    """RFC 7231 date in GMT, e.g. ``Mon, 15 Jan 2024 10:00:00 GMT``."""
    return format_datetime(value.astimezone(UTC), usegmt=True)


def base_headers(content_type: str) -> dict[str, str]:
    return {
        "Content-Type": content_type,
        "X-Robots-Tag": "noindex",
        "X-Content-Type-Options": "nosniff",
        "Content-Security-Policy": "default-src 'none'",
    }


def markdown_headers(last_modified: datetime | None = None) -> dict[str, str]:
    headers = base_headers(MARKDOWN_CONTENT_TYPE)
    if last_modified is not None:
        headers["Last-Modified"] = http_date(last_modified)
    headers["Cache-Control"] = f"public, max-age={RESPONSE_MAX_AGE}"
    return headers


def safe_headers(headers: dict[str, str]) -> dict[str, str]:
    """Drop entries with invalid names or values carrying CR/LF."""
    safe: dict[str, str] = {}
    for name, value in headers.items():
        if not isinstance(name, str) or not _HEADER_NAME_RE.match(name):
            logger.warning("Dropping header with invalid name: %r", name)
            continue
        text = str(value)
        if _HEADER_VALUE_BAD_RE.search(text):
            logger.warning("Dropping header %s: value contains CR/LF", name)
            continue
        safe[name] = text
    return safe
