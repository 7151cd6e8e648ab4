"""Turn an item's rendered HTML into clean HTML ready for Markdown conversion.

Steps, in order:
1. strip residual shortcodes (``[tag ...]...[/tag]`` then ``[tag ...]``)
2. remove ``<script>`` / ``<style>`` blocks, empty paragraphs and presentation
   ``class`` attributes; normalise blank lines
3. apply the image-handling mode (``keep`` / ``alt_only`` / ``remove``)
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup

from llmready.settings import ImageHandling

if TYPE_CHECKING:
    from collections.abc import Callable

    from llmready.items import ContentItem
    from llmready.settings import Settings

logger = logging.getLogger(__name__)

_PAIRED_SHORTCODE_RE = re.compile(r"\[(\w+)\b[^\]]*\].*?\[/\1\]", re.DOTALL)
_SINGLE_SHORTCODE_RE = re.compile(r"\[\w+\b[^\]]*\]")
_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.DOTALL | re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.DOTALL | re.IGNORECASE)
_EMPTY_PARAGRAPH_RE = re.compile(r"<p>\s*</p>", re.IGNORECASE)
_CLASS_ATTR_RE = re.compile(r"""\s+class=(?:"[^"]*"|'[^']*')""", re.IGNORECASE)
_EXCESSIVE_NEWLINES_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class SanitizePolicy:
    image_handling: ImageHandling = ImageHandling.KEEP
    strip_shortcodes: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> SanitizePolicy:
        return cls(
            image_handling=settings.image_handling,
            strip_shortcodes=settings.strip_shortcodes,
        )


# ---------------------------------------------------------------------------
# Individual steps
# ---------------------------------------------------------------------------

def strip_shortcodes(html: str) -> str:
    """Remove bracketed shortcode markup left unresolved by the host."""
    html = _PAIRED_SHORTCODE_RE.sub("", html)
    return _SINGLE_SHORTCODE_RE.sub("", html)


def strip_scripts(html: str) -> str:
    html = _SCRIPT_RE.sub("", html)
    return _STYLE_RE.sub("", html)


def _alt_text(tag: object) -> str:
    getter = getattr(tag, "get", None)
    value = getter("alt") if getter else None
    return value.strip() if isinstance(value, str) else ""


def apply_image_mode(html: str, mode: ImageHandling) -> str:
    """Rewrite ``<figure>`` and ``<img>`` markup according to *mode*.

    Figures collapse to their caption text (prefixed by ``(alt)`` in
    ``alt_only`` mode); standalone images become ``(alt)`` or vanish.
    """
    if mode is ImageHandling.KEEP:
        return html
    lowered = html.lower()
    if "<img" not in lowered and "<figure" not in lowered:
        return html

    soup = BeautifulSoup(html, "html.parser")

    for figure in soup.find_all("figure"):
        caption_el = figure.find("figcaption")
        caption = caption_el.get_text(" ", strip=True) if caption_el else ""
        img = figure.find("img")
        alt = _alt_text(img) if img else ""

        parts: list[str] = []
        if mode is ImageHandling.ALT_ONLY and alt:
            parts.append(f"({alt})")
        if caption:
            parts.append(caption)
        figure.replace_with(" ".join(parts))

    for img in soup.find_all("img"):
        alt = _alt_text(img)
        if mode is ImageHandling.ALT_ONLY and alt:
            img.replace_with(f"({alt})")
        else:
            img.decompose()

    return str(soup)


def clean_markup(html: str) -> str:
    html = strip_scripts(html)
    html = _EMPTY_PARAGRAPH_RE.sub("", html)
    html = _CLASS_ATTR_RE.sub("", html)
    html = _EXCESSIVE_NEWLINES_RE.sub("\n\n", html)
    return html.strip()


def sanitize(html: str, policy: SanitizePolicy) -> str:
    """Return clean HTML for *html* under *policy*."""
    if not html:
        return ""
    if policy.strip_shortcodes:
        html = strip_shortcodes(html)
    html = clean_markup(html)
    return apply_image_mode(html, policy.image_handling)


# ---------------------------------------------------------------------------
# Item-level preparer with re-entrancy guard
# ---------------------------------------------------------------------------

class ContentSanitizer:
    """Prepare a :class:`ContentItem` body for conversion.

    *pre_render* lets a host expand its own markup (shortcodes, embeds) before
    sanitising.  If that callable ends up asking this sanitizer to prepare an
    item again on the same thread, the nested call returns the raw body
    instead of recursing.
    """

    def __init__(
        self,
        policy: SanitizePolicy,
        pre_render: Callable[[str, ContentItem], str] | None = None,
    ) -> None:
        self.policy = policy
        self._pre_render = pre_render
        self._local = threading.local()

    @property
    def depth(self) -> int:
        return getattr(self._local, "depth", 0)

    def prepare(self, item: ContentItem) -> str:
        if self.depth > 0:
            logger.debug("Re-entrant prepare for item %d; returning raw body", item.id)
            return item.body

        self._local.depth = self.depth + 1
        try:
            html = item.body
            if self._pre_render is not None:
                html = self._pre_render(html, item)
            return sanitize(html, self.policy)
        finally:
            self._local.depth = self.depth - 1
