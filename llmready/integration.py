"""Small host-integration helpers: Markdown URLs, head link tag, robots.txt."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llmready.eligibility import PolicyResolver
    from llmready.items import ContentItem
    from llmready.settings import Settings, SiteConfig

MARKDOWN_MEDIA_TYPE = "text/markdown"


def markdown_url(url: str) -> str:
    """``https://site/post/`` -> ``https://site/post.md``."""
    return url.rstrip("/") + ".md"


def is_site_root(url: str, home_url: str) -> bool:
    """True when *url* points at the site root (no per-item Markdown URL)."""
    return url.rstrip("/") == home_url.rstrip("/")


def site_url(site: SiteConfig, path: str) -> str:
    return site.home_url.rstrip("/") + "/" + path.lstrip("/")


def wants_markdown(accept: str | None) -> bool:
    return bool(accept) and MARKDOWN_MEDIA_TYPE in accept.lower()


def alternate_link_tag(item: ContentItem, settings: Settings, resolver: PolicyResolver) -> str:
    """``<link rel="alternate">`` for the item's Markdown URL, or ``""``."""
    if not settings.enable_alternate_links:
        return ""
    if not resolver.is_eligible(item):
        return ""
    href = html.escape(markdown_url(item.url), quote=True)
    return f'<link rel="alternate" type="{MARKDOWN_MEDIA_TYPE}" href="{href}" />'


def robots_txt(output: str, settings: Settings, site: SiteConfig) -> str:
    """Append an ``Llms-txt:`` directive to *output* once, when appropriate."""
    if not settings.enable_robots_txt or not settings.enable_llms_txt:
        return output
    if not site.public:
        return output
    if "Llms-txt:" in output:
        return output
    return f"{output}\nLlms-txt: {site_url(site, 'llms.txt')}\n"
