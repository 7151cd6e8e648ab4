"""Tests for llms.txt, llms-full.txt and the JSON sitemap."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from llmready.cache import InMemoryCacheStore
from llmready.indexes import IndexBuilder, escape_markdown, format_entry
from llmready.items import ArtifactKind, ItemStatus
from llmready.plugins import Hooks, IndexOutputHook
from llmready.repository import InMemoryContentSource
from llmready.settings import Settings, SiteConfig

from conftest import HOME, make_item

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


def _builder(items, settings=None, site=None, hooks=None, cache=None):
    site = site or SiteConfig(name="Tech Blog", description="Notes on Python.", home_url=HOME)
    return IndexBuilder(
        settings or Settings(),
        site,
        InMemoryContentSource(items, home_url=HOME),
        cache if cache is not None else InMemoryCacheStore(),
        hooks,
        now=lambda: FIXED_NOW,
    )


def _section(text: str, heading: str) -> list[str]:
    """Entry lines under ``## heading`` up to the next blank-line-separated heading."""
    lines = text.splitlines()
    start = lines.index(f"## {heading}") + 2
    entries = []
    for line in lines[start:]:
        if not line.startswith("- "):
            break
        entries.append(line)
    return entries


# ---------------------------------------------------------------------------
# Entry formatting
# ---------------------------------------------------------------------------

class TestEntries:
    def test_escape_markdown(self):
        assert escape_markdown("a [b] (c)") == r"a \[b\] \(c\)"

    def test_entry_uses_markdown_url_and_excerpt(self):
        entry = format_entry(make_item(1, title="Intro [draft]", excerpt="Short (intro)"))
        assert entry == r"- [Intro \[draft\]](https://example.com/item-1.md): Short \(intro\)"

    def test_entry_excerpt_trimmed_to_twenty_words(self):
        body = "<p>" + " ".join(f"w{i}" for i in range(25)) + "</p>"
        entry = format_entry(make_item(1, body=body))
        assert entry.endswith("w19...")

    def test_entry_without_excerpt(self):
        entry = format_entry(make_item(1, body=""))
        assert entry == "- [Item 1](https://example.com/item-1.md)"


# ---------------------------------------------------------------------------
# llms.txt
# ---------------------------------------------------------------------------

class TestLlmsTxt:
    def test_curated_and_optional_split(self):
        items = [make_item(i) for i in (1, 2, 3)]
        text = _builder(items, Settings(llms_txt_curated_limit=2, llms_txt_optional_limit=1)).generate_llms_txt()

        curated = _section(text, "Posts")
        optional = _section(text, "Optional")
        assert len(curated) == 2
        assert len(optional) == 1
        assert "item-3.md" in curated[0]
        assert "item-1.md" in optional[0]

    def test_header_and_description(self):
        text = _builder([make_item(1)]).generate_llms_txt()
        assert text.startswith("# Tech Blog\n\n> Notes on Python.\n")

    def test_sticky_posts_first(self):
        items = [make_item(1, sticky=True), make_item(2), make_item(3)]
        text = _builder(items).generate_llms_txt()
        assert "item-1.md" in _section(text, "Posts")[0]

    def test_sticky_ignored_for_other_types(self):
        items = [make_item(1, type="page", sticky=True), make_item(2, type="page")]
        text = _builder(items).generate_llms_txt()
        assert "item-2.md" in _section(text, "Pages")[0]

    def test_sticky_not_duplicated(self):
        items = [make_item(1, sticky=True), make_item(2)]
        text = _builder(items).generate_llms_txt()
        assert text.count("item-1.md") == 1

    def test_site_root_and_configured_pages_excluded(self):
        items = [
            make_item(1, type="page", url=HOME + "/"),
            make_item(2, type="page", slug="blog"),
            make_item(3, type="page", slug="about"),
        ]
        site = SiteConfig(name="Tech Blog", home_url=HOME, posts_page_id=2)
        text = _builder(items, site=site).generate_llms_txt()
        assert _section(text, "Pages") == ["- [Item 3](https://example.com/about.md): Body of item 3."]

    def test_ineligible_items_excluded(self):
        items = [
            make_item(1),
            make_item(2, status=ItemStatus.DRAFT),
            make_item(3, password="pw"),
            make_item(4, type="product"),
        ]
        text = _builder(items).generate_llms_txt()
        for hidden in ("item-2.md", "item-3.md", "item-4.md"):
            assert hidden not in text

    def test_taxonomy_sections_before_optional(self):
        items = [
            make_item(1, terms={"category": ["Python"]}),
            make_item(2, terms={"category": ["Python", "Web"]}),
            make_item(3, terms={"post_tag": ["tips"]}),
        ]
        text = _builder(items, Settings(llms_txt_curated_limit=1)).generate_llms_txt()
        assert _section(text, "Categories") == [
            "- [Python](https://example.com/category/python/): 2 posts",
            "- [Web](https://example.com/category/web/): 1 post",
        ]
        assert _section(text, "Tags") == ["- [tips](https://example.com/tag/tips/): 1 post"]
        assert text.index("## Categories") < text.index("## Optional")

    def test_taxonomies_can_be_hidden(self):
        items = [make_item(1, terms={"category": ["Python"]})]
        text = _builder(items, Settings(llms_txt_show_taxonomies=False)).generate_llms_txt()
        assert "## Categories" not in text

    def test_full_index_footer(self):
        text = _builder([make_item(1)]).generate_llms_txt()
        assert text.endswith("---\n\nSee also: [Full content index](https://example.com/llms-full.txt)\n")

        text = _builder([make_item(1)], Settings(enable_llms_full_txt=False)).generate_llms_txt()
        assert "See also" not in text

    def test_cached_and_hooked(self):
        class Banner:
            name = "banner"

            def process(self, kind, text):
                return f"<!-- {kind.value} -->\n{text}"

        assert isinstance(Banner(), IndexOutputHook)
        hooks = Hooks()
        hooks.add_index(Banner())
        cache = InMemoryCacheStore()
        builder = _builder([make_item(1)], hooks=hooks, cache=cache)

        text = builder.llms_txt()
        assert text.startswith("<!-- llms_txt -->\n# Tech Blog")
        assert cache.get(ArtifactKind.LLMS_TXT) == text
        assert builder.llms_txt() == text


# ---------------------------------------------------------------------------
# llms-full.txt
# ---------------------------------------------------------------------------

class TestLlmsFullTxt:
    def test_flat_sections_without_optional(self):
        items = [make_item(i) for i in range(1, 6)]
        text = _builder(items, Settings(llms_txt_curated_limit=1)).generate_llms_full_txt()
        assert text.startswith("# Tech Blog — Full Index\n")
        assert "[llms.txt](https://example.com/llms.txt)" in text
        assert len(_section(text, "Posts")) == 5
        assert "## Optional" not in text

    def test_limit(self):
        items = [make_item(i) for i in range(1, 6)]
        text = _builder(items, Settings(llms_full_txt_post_limit=2)).generate_llms_full_txt()
        assert len(_section(text, "Posts")) == 2

    def test_no_sticky_priority(self):
        items = [make_item(1, sticky=True), make_item(2)]
        text = _builder(items).generate_llms_full_txt()
        assert "item-2.md" in _section(text, "Posts")[0]


# ---------------------------------------------------------------------------
# Sitemap
# ---------------------------------------------------------------------------

class TestSitemap:
    def test_document_shape(self):
        items = [make_item(1, title="Café"), make_item(2), make_item(3, type="page")]
        data = json.loads(_builder(items).generate_sitemap_json())

        assert data["generated"] == "2024-06-01T12:00:00+00:00"
        assert data["site"] == "Tech Blog"
        assert data["count"] == 3
        assert [p["url"] for p in data["posts"]] == [
            "https://example.com/item-2.md",
            "https://example.com/item-1.md",
            "https://example.com/item-3.md",
        ]
        first = data["posts"][1]
        assert first == {
            "title": "Café",
            "url": "https://example.com/item-1.md",
            "post_type": "post",
            "date_published": "2024-01-16T10:00:00+00:00",
            "date_modified": "2024-01-16T11:00:00+00:00",
        }

    def test_unescaped_output(self):
        text = _builder([make_item(1, title="Café")]).generate_sitemap_json()
        assert "Café" in text
        assert "https://example.com/item-1.md" in text

    def test_ordered_by_creation_date(self):
        items = [
            make_item(1, modified_at=datetime(2025, 1, 1, tzinfo=UTC)),
            make_item(2),
        ]
        data = json.loads(_builder(items).generate_sitemap_json())
        assert [p["url"] for p in data["posts"]] == [
            "https://example.com/item-2.md",
            "https://example.com/item-1.md",
        ]

    @pytest.mark.parametrize("limit, expected", [(0, 0), (1, 1), (5, 2)])
    def test_limit_per_type(self, limit, expected):
        items = [make_item(1), make_item(2)]
        data = json.loads(_builder(items, Settings(sitemap_post_limit=limit)).generate_sitemap_json())
        assert data["count"] == expected
