"""Site-wide listings: curated ``llms.txt``, ``llms-full.txt`` and a JSON sitemap.

Each listing is a cached artifact.  All three share the same selection rules:
eligible items of enabled types, newest modification first, minus the
configured front/posts pages and anything whose URL is the site root.
"""

from __future__ import annotations

import html
import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from llmready.converters.frontmatter import strip_tags, trim_words
from llmready.eligibility import PolicyResolver
from llmready.integration import is_site_root, markdown_url, site_url
from llmready.items import ArtifactKind
from llmready.settings import PRIMARY_TYPE

if TYPE_CHECKING:
    from collections.abc import Callable

    from llmready.cache import CacheStore
    from llmready.items import ContentItem
    from llmready.plugins import Hooks
    from llmready.repository import ContentSource
    from llmready.settings import Settings, SiteConfig

logger = logging.getLogger(__name__)

ENTRY_EXCERPT_WORDS = 20
TOP_TERMS = 5

_MARKDOWN_ESCAPES = str.maketrans({"[": r"\[", "]": r"\]", "(": r"\(", ")": r"\)"})


def escape_markdown(text: str) -> str:
    """Escape characters that would break ``[title](url)`` link syntax."""
    return text.translate(_MARKDOWN_ESCAPES)


def entry_excerpt(item: ContentItem, words: int = ENTRY_EXCERPT_WORDS) -> str:
    if item.excerpt.strip():
        return strip_tags(item.excerpt)
    return trim_words(strip_tags(item.body), words)


def format_entry(item: ContentItem) -> str:
    """``- [Title](https://site/item.md): excerpt``"""
    entry = f"- [{escape_markdown(item.title)}]({markdown_url(item.url)})"
    excerpt = escape_markdown(entry_excerpt(item))
    if excerpt:
        entry += f": {excerpt}"
    return entry


def _plural(count: int, one: str, many: str) -> str:
    return f"{count} {one if count == 1 else many}"


class IndexBuilder:
    """Generate and cache the three site-wide listings."""

    def __init__(
        self,
        settings: Settings,
        site: SiteConfig,
        source: ContentSource,
        cache: CacheStore,
        hooks: Hooks | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.site = site
        self.source = source
        self.cache = cache
        self.hooks = hooks
        self.resolver = PolicyResolver(settings)
        self._now = now or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Cached accessors
    # ------------------------------------------------------------------

    def llms_txt(self) -> str:
        return self._cached(ArtifactKind.LLMS_TXT, self.generate_llms_txt)

    def llms_full_txt(self) -> str:
        return self._cached(ArtifactKind.LLMS_FULL_TXT, self.generate_llms_full_txt)

    def sitemap_json(self) -> str:
        return self._cached(ArtifactKind.SITEMAP, self.generate_sitemap_json)

    def _cached(self, kind: ArtifactKind, generate: Callable[[], str]) -> str:
        cached = self.cache.get(kind)
        if cached is not None:
            logger.debug("Cache hit for %s", kind.value)
            return cached
        text = generate()
        if self.hooks is not None and kind is not ArtifactKind.SITEMAP:
            text = self.hooks.apply_index(kind, text)
        self.cache.set(kind, None, text, self.settings.cache_ttl)
        return text

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _candidates(self, item_type: str, order_by: str = "modified") -> list[ContentItem]:
        items = self.source.published(
            item_type, order_by=order_by, exclude_ids=self.site.excluded_ids(),
        )
        return [
            item
            for item in items
            if self.resolver.is_eligible(item) and not is_site_root(item.url, self.site.home_url)
        ]

    def _with_sticky_priority(self, item_type: str, total: int) -> list[ContentItem]:
        """Up to *total* items, sticky ones first for the primary type only."""
        items = self._candidates(item_type)
        if item_type == PRIMARY_TYPE:
            sticky = [item for item in items if item.sticky]
            rest = [item for item in items if not item.sticky]
            items = sticky + rest
        return items[:total]

    def _header(self, title: str) -> list[str]:
        lines = [f"# {escape_markdown(title)}"]
        description = html.unescape(self.site.description)
        if description:
            lines += ["", f"> {escape_markdown(description)}"]
        return lines

    # ------------------------------------------------------------------
    # Generators
    # ------------------------------------------------------------------

    def generate_llms_txt(self) -> str:
        curated_limit = self.resolver.curated_limit
        optional_limit = self.resolver.optional_limit
        lines = self._header(html.unescape(self.site.name))
        optional_lines: list[str] = []

        for item_type in self.resolver.enabled_types:
            items = self._with_sticky_priority(item_type, curated_limit + optional_limit)
            if not items:
                continue
            lines += ["", f"## {self.site.label_for_type(item_type)}", ""]
            lines += [format_entry(item) for item in items[:curated_limit]]
            optional_lines += [format_entry(item) for item in items[curated_limit:]]

        if self.settings.llms_txt_show_taxonomies:
            lines += self._taxonomy_sections()

        if optional_lines:
            lines += ["", "## Optional", ""]
            lines += optional_lines

        if self.settings.enable_llms_full_txt:
            full_url = site_url(self.site, "llms-full.txt")
            lines += ["", "---", "", f"See also: [Full content index]({full_url})"]

        lines.append("")
        return "\n".join(lines)

    def _taxonomy_sections(self) -> list[str]:
        lines: list[str] = []
        for taxonomy in self.settings.llms_txt_taxonomies:
            terms = self.source.top_terms(taxonomy, TOP_TERMS)
            if not terms:
                continue
            lines += ["", f"## {self.site.label_for_taxonomy(taxonomy)}", ""]
            for term in terms:
                count = _plural(term.count, "post", "posts")
                lines.append(f"- [{escape_markdown(term.name)}]({term.url}): {count}")
        return lines

    def generate_llms_full_txt(self) -> str:
        site_name = html.unescape(self.site.name)
        lines = self._header(f"{site_name} — Full Index")
        llms_url = site_url(self.site, "llms.txt")
        lines += [
            "",
            f"> This is the comprehensive content index. For a curated summary, see [llms.txt]({llms_url}).",
        ]

        limit = self.resolver.full_limit
        for item_type in self.resolver.enabled_types:
            items = self._candidates(item_type)[:limit]
            if not items:
                continue
            lines += ["", f"## {self.site.label_for_type(item_type)}", ""]
            lines += [format_entry(item) for item in items]

        lines.append("")
        return "\n".join(lines)

    def generate_sitemap_json(self) -> str:
        limit = self.resolver.sitemap_limit
        entries: list[dict[str, str]] = []
        for item_type in self.resolver.enabled_types:
            for item in self._candidates(item_type, order_by="created")[:limit]:
                entries.append(
                    {
                        "title": item.title,
                        "url": markdown_url(item.url),
                        "post_type": item.type,
                        "date_published": item.created_at.isoformat(),
                        "date_modified": item.modified_at.isoformat(),
                    },
                )

        data = {
            "generated": self._now().isoformat(timespec="seconds"),
            "site": html.unescape(self.site.name),
            "count": len(entries),
            "posts": entries,
        }
        return json.dumps(data, indent=4, ensure_ascii=False)
