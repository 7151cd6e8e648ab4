"""Conversion sub-package: sanitize HTML, render Markdown, build frontmatter."""

from .frontmatter import FrontmatterBuilder, escape_yaml, make_excerpt, render_frontmatter
from .markdown import html_to_markdown
from .sanitize import ContentSanitizer, SanitizePolicy, sanitize

__all__ = [
    "ContentSanitizer",
    "FrontmatterBuilder",
    "SanitizePolicy",
    "escape_yaml",
    "html_to_markdown",
    "make_excerpt",
    "render_frontmatter",
    "sanitize",
]
