"""llmready.plugins - Extension points for frontmatter fields, rendered output,
index output and response headers.

Usage::

    from llmready.plugins import Hooks

    class AddLicense:
        name = "add_license"
        def fields(self, fields: dict, item: ContentItem) -> dict:
            fields["license"] = "CC-BY-4.0"
            return fields

    hooks = Hooks()
    hooks.add_frontmatter(AddLicense())
    pipeline = RenderPipeline(settings, site, source, cache, hooks=hooks)

All hook types follow ``runtime_checkable`` ``Protocol`` contracts so you can
use ``isinstance()`` checks in tests without inheriting from a base class.
Hooks are held by a :class:`Hooks` instance handed to each component; there is
no module-level registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from llmready.items import ArtifactKind, ContentItem

# ---------------------------------------------------------------------------
# Protocol definitions
# ---------------------------------------------------------------------------

@runtime_checkable
class FrontmatterFieldsHook(Protocol):
    """Adjusts the frontmatter field mapping before YAML serialization."""

    name: str

    def fields(self, fields: dict[str, Any], item: ContentItem) -> dict[str, Any]:
        """Return the (possibly modified) field mapping."""
        ...


@runtime_checkable
class MarkdownOutputHook(Protocol):
    """Post-processes a full Markdown document (frontmatter + body)."""

    name: str

    def process(self, document: str, item: ContentItem) -> str:
        """Return the document to cache and serve."""
        ...


@runtime_checkable
class IndexOutputHook(Protocol):
    """Post-processes generated llms.txt / llms-full.txt text."""

    name: str

    def process(self, kind: ArtifactKind, text: str) -> str:
        """Return the index text to cache and serve."""
        ...


@runtime_checkable
class ResponseHeadersHook(Protocol):
    """Adds or overrides HTTP headers on Markdown responses."""

    name: str

    def headers(self, headers: dict[str, str], item: ContentItem) -> dict[str, str]:
        """Return the header mapping; invalid entries are dropped later."""
        ...


# ---------------------------------------------------------------------------
# Hook container
# ---------------------------------------------------------------------------

@dataclass
class Hooks:
    """Ordered hook lists; each hook receives the previous hook's output."""

    frontmatter: list[FrontmatterFieldsHook] = field(default_factory=list)
    markdown: list[MarkdownOutputHook] = field(default_factory=list)
    index: list[IndexOutputHook] = field(default_factory=list)
    headers: list[ResponseHeadersHook] = field(default_factory=list)

    def add_frontmatter(self, hook: FrontmatterFieldsHook) -> None:
        self.frontmatter.append(hook)

    def add_markdown(self, hook: MarkdownOutputHook) -> None:
        self.markdown.append(hook)

    def add_index(self, hook: IndexOutputHook) -> None:
        self.index.append(hook)

    def add_headers(self, hook: ResponseHeadersHook) -> None:
        self.headers.append(hook)

    # ------------------------------------------------------------------
    # Runners
    # ------------------------------------------------------------------

    def apply_frontmatter(self, fields: dict[str, Any], item: ContentItem) -> dict[str, Any]:
        for hook in self.frontmatter:
            fields = hook.fields(fields, item)
        return fields

    def apply_markdown(self, document: str, item: ContentItem) -> str:
        for hook in self.markdown:
            document = hook.process(document, item)
        return document

    def apply_index(self, kind: ArtifactKind, text: str) -> str:
        for hook in self.index:
            text = hook.process(kind, text)
        return text

    def apply_headers(self, headers: dict[str, str], item: ContentItem) -> dict[str, str]:
        for hook in self.headers:
            headers = hook.headers(headers, item)
        return headers
