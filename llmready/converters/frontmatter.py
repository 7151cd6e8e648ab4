"""Build the YAML frontmatter block that heads every Markdown document."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup

if TYPE_CHECKING:
    from llmready.items import ContentItem
    from llmready.plugins import Hooks
    from llmready.settings import Settings

# Characters that force a scalar into double quotes
_YAML_SPECIAL_RE = re.compile(r"""[:#\[\]{}&*!|>'"%@`,?]""")
_LEADING_RE = re.compile(r"^[\s-]")
_TRAILING_RE = re.compile(r"\s$")
_LINE_BREAK_RE = re.compile(r"[\r\n]")

# Taxonomy name -> frontmatter key
_TAXONOMY_KEYS: dict[str, str] = {
    "category": "categories",
    "post_tag": "tags",
}

EXCERPT_WORDS = 30


def escape_yaml(value: str) -> str:
    """Return *value* as a YAML scalar, double-quoted when necessary."""
    if (
        value == ""
        or _YAML_SPECIAL_RE.search(value)
        or _LEADING_RE.search(value)
        or _TRAILING_RE.search(value)
        or _LINE_BREAK_RE.search(value)
    ):
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
        )
        return f'"{escaped}"'
    return value


def strip_tags(html: str) -> str:
    """Plain text of *html* with script/style content dropped and whitespace collapsed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.find_all(["script", "style"]):
        el.decompose()
    return " ".join(soup.get_text(" ").split())


def trim_words(text: str, words: int, more: str = "...") -> str:
    parts = text.split()
    if len(parts) <= words:
        return " ".join(parts)
    return " ".join(parts[:words]) + more


def make_excerpt(item: ContentItem, words: int = EXCERPT_WORDS) -> str:
    """Explicit excerpt when set, else the first *words* words of the body."""
    if item.excerpt.strip():
        return strip_tags(item.excerpt)
    return trim_words(strip_tags(item.body), words)


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return escape_yaml("")
    return escape_yaml(str(value))


def render_frontmatter(fields: dict[str, Any]) -> str:
    """Serialise *fields* between ``---`` delimiters, ending with a newline."""
    lines = ["---"]
    for key, value in fields.items():
        if isinstance(value, (list, tuple)):
            lines.append(f"{key}:")
            lines.extend(f"  - {_scalar(entry)}" for entry in value)
        else:
            lines.append(f"{key}: {_scalar(value)}")
    lines.append("---")
    lines.append("")
    return "\n".join(lines)


class FrontmatterBuilder:
    """Collect frontmatter fields for an item and serialise them."""

    def __init__(self, settings: Settings, hooks: Hooks | None = None) -> None:
        self.settings = settings
        self.hooks = hooks

    def fields(self, item: ContentItem) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "title": item.title,
            "date": item.created_at.isoformat(),
            "modified": item.modified_at.isoformat(),
            "author": item.author,
            "excerpt": make_excerpt(item),
            "url": item.url,
            "post_type": item.type,
        }

        for taxonomy, names in item.terms.items():
            if names:
                fields[_TAXONOMY_KEYS.get(taxonomy, taxonomy)] = list(names)

        for key in self.settings.frontmatter_meta_keys:
            value = item.meta.get(key)
            if value is None or value == "" or value == []:
                continue
            if key in fields:
                continue
            fields[key] = [str(v) for v in value] if isinstance(value, (list, tuple)) else value

        return self._apply_hooks(fields, item)

    def teaser_fields(self, item: ContentItem) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "title": item.title,
            "date": item.created_at.isoformat(),
            "post_type": item.type,
            "protected": True,
        }
        return self._apply_hooks(fields, item)

    def build(self, item: ContentItem) -> str:
        return render_frontmatter(self.fields(item))

    def build_teaser(self, item: ContentItem) -> str:
        return render_frontmatter(self.teaser_fields(item))

    def _apply_hooks(self, fields: dict[str, Any], item: ContentItem) -> dict[str, Any]:
        if self.hooks is None:
            return fields
        return self.hooks.apply_frontmatter(fields, item)
