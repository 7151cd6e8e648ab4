"""Convert sanitized HTML to Markdown."""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

logger = logging.getLogger(__name__)

_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")
_TRAILING_WHITESPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)

# Removed together with their content before conversion
_REMOVED_TAGS: tuple[str, ...] = ("script", "style", "nav", "footer")


def html_to_markdown(html: str) -> str:
    """Convert *html* to clean Markdown.

    Uses markdownify with ATX headings and ``-`` bullets.  Unknown elements
    are reduced to their text.  Post-processes to:
    - Strip trailing whitespace from lines
    - Collapse runs of 3+ newlines to one blank line
    - End with exactly one newline

    Returns ``""`` for blank input, and also when the transform itself fails.
    """
    if not html or not html.strip():
        return ""

    try:
        soup = BeautifulSoup(html, "lxml")
        for el in soup.find_all(_REMOVED_TAGS):
            el.decompose()
        md = MarkdownConverter(heading_style=ATX, bullets="-").convert_soup(soup)
    except Exception as exc:
        logger.warning("HTML to Markdown conversion failed: %s", exc)
        return ""

    return post_process(md)


def post_process(md: str) -> str:
    md = _TRAILING_WHITESPACE_RE.sub("", md)
    md = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", md)
    md = md.strip()
    return f"{md}\n" if md else ""
