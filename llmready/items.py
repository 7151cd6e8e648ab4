"""Pydantic models for content items, cache artifacts and mutation events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import dateparser
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ItemStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    PROTECTED = "protected"
    TRASHED = "trashed"


class ArtifactKind(str, Enum):
    """Kinds of rendered artifacts held by the cache store."""

    ITEM = "item"
    LLMS_TXT = "llms_txt"
    LLMS_FULL_TXT = "llms_full_txt"
    SITEMAP = "sitemap"


INDEX_KINDS: tuple[ArtifactKind, ...] = (
    ArtifactKind.LLMS_TXT,
    ArtifactKind.LLMS_FULL_TXT,
    ArtifactKind.SITEMAP,
)


class MutationKind(str, Enum):
    SAVED = "saved"
    DELETED = "deleted"
    STATUS_CHANGED = "status_changed"
    TERMS_CHANGED = "terms_changed"


# ---------------------------------------------------------------------------
# Date coercion
# ---------------------------------------------------------------------------

def _parse_datetime(raw: Any) -> datetime:
    """Coerce *raw* (datetime, epoch seconds or free-form string) to aware UTC."""
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, (int, float)):
        parsed = datetime.fromtimestamp(raw, tz=UTC)
    elif isinstance(raw, str) and raw.strip():
        parsed = dateparser.parse(
            raw.strip(),
            settings={
                "TIMEZONE": "UTC",
                "RETURN_AS_TIMEZONE_AWARE": True,
                "TO_TIMEZONE": "UTC",
                "PREFER_DAY_OF_MONTH": "first",
            },
        )
        if parsed is None:
            raise ValueError(f"Unparseable date: {raw!r}")
    else:
        raise ValueError(f"Unsupported date value: {raw!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# ---------------------------------------------------------------------------
# Content item
# ---------------------------------------------------------------------------

class ContentItem(BaseModel):
    """A content item as read from the host content store.

    ``body`` is the item's rendered HTML; ``terms`` maps a taxonomy name
    (``category``, ``post_tag``, ...) to the names of the assigned terms.
    """

    id: int
    status: ItemStatus = ItemStatus.DRAFT
    type: str = "post"
    title: str = ""
    body: str = ""
    excerpt: str = ""
    created_at: datetime
    modified_at: datetime
    author: str = ""
    terms: dict[str, list[str]] = Field(default_factory=dict)
    password: str | None = None
    url: str
    meta: dict[str, Any] = Field(default_factory=dict)
    sticky: bool = False

    @field_validator("created_at", "modified_at", mode="before")
    @classmethod
    def coerce_datetime(cls, v: Any) -> datetime:
        return _parse_datetime(v)

    @field_validator("title", "author", "excerpt", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def is_protected(self) -> bool:
        return bool(self.password) or self.status is ItemStatus.PROTECTED


class Term(BaseModel):
    """A taxonomy term with its public archive URL and item count."""

    name: str
    url: str
    count: int = 0


# ---------------------------------------------------------------------------
# Cache + events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CacheEntry:
    key: tuple[ArtifactKind, int | None]
    value: str
    expires_at: float


class ContentMutationEvent(BaseModel):
    """A content change reported by the host integration layer."""

    item_id: int
    kind: MutationKind
    old_status: ItemStatus | None = None
    new_status: ItemStatus | None = None
    is_revision: bool = False
    is_autosave: bool = False
