"""Read-only access to the host content store.

The pipeline only reads items; the host owns them.  :class:`ContentSource`
is the port a host implements; :class:`InMemoryContentSource` backs the CLI
(loaded from a JSON export) and the test-suite.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlparse

from pydantic import ValidationError

from llmready.items import ContentItem, ItemStatus, Term

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_NON_SLUG_RE = re.compile(r"[^\w\-]+")
_MULTI_DASH_RE = re.compile(r"-{2,}")

# Taxonomy -> archive URL segment
_TAXONOMY_BASES: dict[str, str] = {"category": "category", "post_tag": "tag"}


class ContentSource(Protocol):
    def get(self, item_id: int) -> ContentItem | None:
        ...

    def resolve_path(self, path: str) -> ContentItem | None:
        ...

    def published(
        self,
        item_type: str,
        *,
        order_by: str = "modified",
        limit: int | None = None,
        exclude_ids: Iterable[int] = (),
    ) -> list[ContentItem]:
        ...

    def items(self) -> list[ContentItem]:
        ...

    def top_terms(self, taxonomy: str, limit: int = 5) -> list[Term]:
        ...


def _slugify(text: str) -> str:
    slug = _NON_SLUG_RE.sub("-", text.strip().lower())
    return _MULTI_DASH_RE.sub("-", slug).strip("-")


def _normalize_path(path: str) -> str:
    return "/" + path.strip("/") if path.strip("/") else "/"


class InMemoryContentSource:
    """Dictionary-backed content source."""

    def __init__(self, items: Iterable[ContentItem] = (), home_url: str = "http://localhost") -> None:
        self.home_url = home_url.rstrip("/")
        self._items: dict[int, ContentItem] = {item.id: item for item in items}

    def add(self, item: ContentItem) -> None:
        self._items[item.id] = item

    def remove(self, item_id: int) -> None:
        self._items.pop(item_id, None)

    def get(self, item_id: int) -> ContentItem | None:
        return self._items.get(item_id)

    def items(self) -> list[ContentItem]:
        return sorted(self._items.values(), key=lambda i: i.id)

    def resolve_path(self, path: str) -> ContentItem | None:
        target = _normalize_path(urlparse(path).path)
        for item in self._items.values():
            if _normalize_path(urlparse(item.url).path) == target:
                return item
        return None

    def published(
        self,
        item_type: str,
        *,
        order_by: str = "modified",
        limit: int | None = None,
        exclude_ids: Iterable[int] = (),
    ) -> list[ContentItem]:
        """Published, unprotected items of *item_type*, newest first."""
        excluded = set(exclude_ids)
        matches = [
            item
            for item in self._items.values()
            if item.type == item_type
            and item.status is ItemStatus.PUBLISHED
            and not item.is_protected
            and item.id not in excluded
        ]
        if order_by == "created":
            matches.sort(key=lambda i: (i.created_at, i.id), reverse=True)
        else:
            matches.sort(key=lambda i: (i.modified_at, i.id), reverse=True)
        return matches if limit is None else matches[:max(limit, 0)]

    def top_terms(self, taxonomy: str, limit: int = 5) -> list[Term]:
        """Most-used terms of *taxonomy* across published items."""
        counts: Counter[str] = Counter()
        for item in self._items.values():
            if item.status is not ItemStatus.PUBLISHED:
                continue
            counts.update(set(item.terms.get(taxonomy, [])))

        base = _TAXONOMY_BASES.get(taxonomy, _slugify(taxonomy))
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0].lower()))
        return [
            Term(name=name, url=f"{self.home_url}/{base}/{_slugify(name)}/", count=count)
            for name, count in ranked[:limit]
            if count > 0
        ]


def load_content_file(path: str | Path, home_url: str = "http://localhost") -> InMemoryContentSource:
    """Load a JSON export (a list of items, or ``{"items": [...]}``).

    Records that fail validation are skipped with a warning.
    """
    data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    records = data.get("items", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        records = []

    items: list[ContentItem] = []
    for record in records:
        try:
            items.append(ContentItem.model_validate(record))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid content record %r: %d errors",
                record.get("id") if isinstance(record, dict) else record,
                exc.error_count(),
            )
    logger.info("Loaded %d content items from %s", len(items), path)
    return InMemoryContentSource(items, home_url=home_url)
