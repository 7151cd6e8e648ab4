"""llmready.pipeline - the render orchestrator shared by HTTP, CLI and admin.

Basic usage::

    from llmready.cache import InMemoryCacheStore
    from llmready.pipeline import RenderPipeline
    from llmready.repository import InMemoryContentSource
    from llmready.settings import Settings, SiteConfig

    pipeline = RenderPipeline(
        Settings(), SiteConfig(name="My Blog"), InMemoryContentSource(items),
        InMemoryCacheStore(),
    )
    print(pipeline.render_item(item))           # frontmatter + Markdown body
    print(pipeline.indexes.llms_txt())          # curated index

Every render goes cache lookup -> sanitize -> Markdown -> frontmatter ->
output hooks -> cache store.  Teasers for protected items skip both the
converters and the cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from llmready.cache import CacheInvalidator, CacheStore, FlushGuard
from llmready.converters.frontmatter import FrontmatterBuilder
from llmready.converters.markdown import html_to_markdown
from llmready.converters.sanitize import ContentSanitizer, SanitizePolicy
from llmready.eligibility import Eligibility, PolicyResolver
from llmready.errors import NotFoundError
from llmready.indexes import IndexBuilder
from llmready.integration import is_site_root
from llmready.items import INDEX_KINDS, ArtifactKind
from llmready.plugins import Hooks
from llmready.settings import coerce_settings, save_settings

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from pathlib import Path

    from llmready.items import ContentItem, ContentMutationEvent
    from llmready.repository import ContentSource
    from llmready.settings import Settings, SiteConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RenderResult:
    document: str
    item: ContentItem
    teaser: bool = False

    @property
    def last_modified(self) -> datetime | None:
        return None if self.teaser else self.item.modified_at


@dataclass
class GenerateReport:
    generated: int = 0
    skipped: int = 0
    failed: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class StatusReport:
    enabled_types: list[str]
    counts: dict[str, int]
    cache_entries: int
    cache_bytes: int
    cache_ttl: int

    @property
    def total_items(self) -> int:
        return sum(self.counts.values())


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class RenderPipeline:
    """Compose eligibility, conversion and caching for content items."""

    def __init__(
        self,
        settings: Settings,
        site: SiteConfig,
        source: ContentSource,
        cache: CacheStore,
        hooks: Hooks | None = None,
        *,
        pre_render: Callable[[str, ContentItem], str] | None = None,
        flush_guard: FlushGuard | None = None,
        settings_path: str | Path | None = None,
    ) -> None:
        self.site = site
        self.source = source
        self.cache = cache
        self.hooks = hooks or Hooks()
        self.settings_path = settings_path
        self._pre_render = pre_render
        self.flush_guard = flush_guard or FlushGuard(site.flush_cooldown)
        self.invalidator = CacheInvalidator(cache)
        self.configure(settings)

    def configure(self, settings: Settings) -> None:
        """(Re)build every policy-dependent component from *settings*."""
        self.settings = settings
        self.resolver = PolicyResolver(settings)
        self.sanitizer = ContentSanitizer(SanitizePolicy.from_settings(settings), self._pre_render)
        self.frontmatter = FrontmatterBuilder(settings, self.hooks)
        self.indexes = IndexBuilder(settings, self.site, self.source, self.cache, self.hooks)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_fresh(self, item: ContentItem) -> str:
        """Render *item* without touching the cache."""
        html = self.sanitizer.prepare(item)
        body = html_to_markdown(html)
        document = self.frontmatter.build(item) + body
        return self.hooks.apply_markdown(document, item)

    def render_teaser(self, item: ContentItem) -> str:
        return f"{self.frontmatter.build_teaser(item)}{self.site.teaser_text}\n"

    def render_item(self, item: ContentItem) -> str:
        """Return the Markdown document for *item*.

        Raises:
            NotFoundError: the item is not eligible for export.
        """
        return self.serve(item).document

    def serve(self, item: ContentItem) -> RenderResult:
        verdict = self.resolver.resolve(item)
        if verdict is Eligibility.INELIGIBLE:
            raise NotFoundError(f"Item {item.id} is not available")
        if verdict is Eligibility.TEASER:
            return RenderResult(self.render_teaser(item), item, teaser=True)

        cached = self.cache.get(ArtifactKind.ITEM, item.id)
        if cached is not None:
            logger.debug("Cache hit for item %d", item.id)
            return RenderResult(cached, item)

        logger.debug("Cache miss for item %d", item.id)
        document = self.render_fresh(item)
        self.cache.set(ArtifactKind.ITEM, item.id, document, self.settings.cache_ttl)
        return RenderResult(document, item)

    def serve_id(self, item_id: int) -> RenderResult:
        item = self.source.get(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return self.serve(item)

    def serve_path(self, path: str) -> RenderResult:
        """Serve the item at *path*; the site root has no Markdown rendition."""
        item = self.source.resolve_path(path)
        if item is None:
            raise NotFoundError(f"No item at {path}")
        if is_site_root(item.url, self.site.home_url):
            raise NotFoundError(f"Item {item.id} is the site root")
        return self.serve(item)

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def preview(self, item_id: int) -> str:
        """Cached document if present, else a fresh render that is not stored."""
        item = self.source.get(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        cached = self.cache.get(ArtifactKind.ITEM, item_id)
        return cached if cached is not None else self.render_fresh(item)

    def cache_status(self, item_id: int) -> bool:
        return self.cache.get(ArtifactKind.ITEM, item_id) is not None

    def invalidate(self, item_id: int) -> None:
        self.cache.invalidate_item(item_id)

    def flush(self) -> None:
        """Rate-limited full flush for interactive callers."""
        self.flush_guard.flush(self.cache)

    def save_settings(self, raw: dict[str, Any]) -> Settings:
        """Coerce and apply *raw* settings; every cached artifact is dropped."""
        settings = coerce_settings(raw)
        self.configure(settings)
        self.cache.invalidate_all()
        if self.settings_path is not None:
            save_settings(self.settings_path, settings)
        logger.info("Settings updated; cache invalidated")
        return settings

    def handle_event(self, event: ContentMutationEvent) -> bool:
        return self.invalidator.handle(event)

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def flush_cache(self, item_id: int | None = None, item_type: str | None = None) -> int:
        """Flush one item, every published item of a type, or everything.

        Returns the number of item entries targeted (0 for a full flush).
        """
        if item_id is not None:
            if self.source.get(item_id) is None:
                raise NotFoundError(f"Item {item_id} not found")
            self.cache.invalidate_item(item_id)
            logger.info("Cache flushed for item %d", item_id)
            return 1

        if item_type:
            items = self.source.published(item_type)
            for item in items:
                self.cache.delete(ArtifactKind.ITEM, item.id)
            for kind in INDEX_KINDS:
                self.cache.delete(kind)
            logger.info("Cache flushed for %d items of type %r", len(items), item_type)
            return len(items)

        self.cache.invalidate_all()
        return 0

    def generate(self, item_type: str | None = None, *, force: bool = False) -> GenerateReport:
        """Pre-render eligible items into the cache."""
        types = [item_type] if item_type else self.resolver.enabled_types
        report = GenerateReport()

        for type_name in types:
            for item in self.source.published(type_name):
                if not self.resolver.is_eligible(item):
                    report.skipped += 1
                    continue
                if not force and self.cache_status(item.id):
                    logger.debug("Skipping item %d (%s): already cached", item.id, item.title)
                    report.skipped += 1
                    continue
                try:
                    document = self.render_fresh(item)
                except Exception:
                    logger.exception("Rendering failed for item %d", item.id)
                    report.failed.append(item.id)
                    continue
                self.cache.set(ArtifactKind.ITEM, item.id, document, self.settings.cache_ttl)
                logger.info("Generated Markdown for item %d (%s)", item.id, item.title)
                report.generated += 1

        return report

    def status(self) -> StatusReport:
        stats = self.cache.stats()
        counts = {t: len(self.source.published(t)) for t in self.resolver.enabled_types}
        return StatusReport(
            enabled_types=self.resolver.enabled_types,
            counts=counts,
            cache_entries=stats.item_entries,
            cache_bytes=stats.total_bytes,
            cache_ttl=self.settings.cache_ttl,
        )
