"""HTTP tests for the public Markdown/index routes and the admin API."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from llmready.eligibility import PolicyResolver
from llmready.headers import http_date, safe_headers
from llmready.integration import alternate_link_tag, markdown_url, robots_txt, wants_markdown
from llmready.plugins import Hooks, ResponseHeadersHook
from llmready.settings import Settings, SiteConfig
from llmready.web import create_app

from conftest import HOME, make_item

ADMIN = {"X-Admin-Token": "s3cret"}


@pytest.fixture
def client(pipeline) -> TestClient:
    return TestClient(create_app(pipeline))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHeaderHelpers:
    def test_http_date(self):
        assert http_date(datetime(2024, 1, 15, 10, 0, tzinfo=UTC)) == "Mon, 15 Jan 2024 10:00:00 GMT"

    def test_safe_headers_drops_invalid_entries(self):
        out = safe_headers({
            "X-Good": "ok",
            "X Bad": "space in name",
            "X-Split": "a\r\nSet-Cookie: x=1",
            "X-Newline": "a\nb",
        })
        assert out == {"X-Good": "ok"}


class TestIntegrationHelpers:
    def test_markdown_url(self):
        assert markdown_url("https://example.com/post/") == "https://example.com/post.md"
        assert markdown_url("https://example.com/post") == "https://example.com/post.md"

    def test_wants_markdown(self):
        assert wants_markdown("text/markdown, text/html;q=0.9")
        assert not wants_markdown("text/html")
        assert not wants_markdown(None)

    def test_alternate_link_tag(self):
        settings = Settings()
        tag = alternate_link_tag(make_item(1, slug='a"b'), settings, PolicyResolver(settings))
        assert tag == '<link rel="alternate" type="text/markdown" href="https://example.com/a&quot;b.md" />'

    def test_alternate_link_tag_disabled_or_ineligible(self):
        off = Settings(enable_alternate_links=False)
        assert alternate_link_tag(make_item(1), off, PolicyResolver(off)) == ""
        on = Settings()
        assert alternate_link_tag(make_item(1, password="pw"), on, PolicyResolver(on)) == ""

    def test_robots_directive_appended_once(self):
        site = SiteConfig(home_url=HOME)
        out = robots_txt("User-agent: *\n", Settings(), site)
        assert out == "User-agent: *\n\nLlms-txt: https://example.com/llms.txt\n"
        assert robots_txt(out, Settings(), site) == out

    def test_robots_untouched_when_private_or_disabled(self):
        assert robots_txt("x", Settings(), SiteConfig(public=False)) == "x"
        assert robots_txt("x", Settings(enable_robots_txt=False), SiteConfig()) == "x"
        assert robots_txt("x", Settings(enable_llms_txt=False), SiteConfig()) == "x"


# ---------------------------------------------------------------------------
# Direct Markdown endpoint
# ---------------------------------------------------------------------------

class TestMarkdownEndpoint:
    def test_headers(self, client):
        resp = client.get("/item-1.md")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "text/markdown; charset=utf-8"
        assert resp.headers["x-robots-tag"] == "noindex"
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["content-security-policy"] == "default-src 'none'"
        assert resp.headers["cache-control"] == "public, max-age=3600"
        assert resp.headers["last-modified"] == "Tue, 16 Jan 2024 11:00:00 GMT"
        assert resp.text.startswith("---\ntitle: First post\n")

    def test_unknown_item_is_markdown_404(self, client):
        resp = client.get("/missing.md")
        assert resp.status_code == 404
        assert resp.text == "# 404 Not Found\n"
        assert resp.headers["content-type"].startswith("text/markdown")

    def test_ineligible_item_is_404(self, client):
        assert client.get("/item-4.md").status_code == 404
        assert client.get("/item-5.md").status_code == 404

    def test_teaser_has_no_last_modified(self, client, pipeline):
        pipeline.configure(Settings(show_protected_teaser=True))
        resp = client.get("/item-5.md")
        assert resp.status_code == 200
        assert "protected: true" in resp.text
        assert "last-modified" not in resp.headers

    def test_header_hooks_are_validated(self, settings, site, source, cache):
        from llmready.pipeline import RenderPipeline

        class ExtraHeaders:
            name = "extra"

            def headers(self, headers, item):
                headers["X-Item-Id"] = str(item.id)
                headers["Bad Header"] = "x"
                headers["X-Injected"] = "a\r\nSet-Cookie: evil=1"
                return headers

        assert isinstance(ExtraHeaders(), ResponseHeadersHook)
        hooks = Hooks()
        hooks.add_headers(ExtraHeaders())
        client = TestClient(create_app(RenderPipeline(settings, site, source, cache, hooks)))

        resp = client.get("/item-1.md")
        assert resp.headers["x-item-id"] == "1"
        assert "x-injected" not in resp.headers
        assert "set-cookie" not in resp.headers


# ---------------------------------------------------------------------------
# Content negotiation
# ---------------------------------------------------------------------------

class TestContentNegotiation:
    def test_accept_markdown(self, client):
        resp = client.get("/item-1/", headers={"Accept": "text/markdown"})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "text/markdown; charset=utf-8"
        assert resp.headers["vary"] == "Accept"

    def test_html_by_default_with_alternate_link(self, client):
        resp = client.get("/item-1/", headers={"Accept": "text/html"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert '<link rel="alternate" type="text/markdown" href="https://example.com/item-1.md" />' in resp.text
        assert resp.headers["vary"] == "Accept"

    def test_negotiation_disabled(self, client, pipeline):
        pipeline.configure(Settings(enable_content_negotiation=False))
        resp = client.get("/item-1/", headers={"Accept": "text/markdown"})
        assert resp.headers["content-type"].startswith("text/html")

    def test_ineligible_item_is_404_with_markdown_accept(self, client):
        resp = client.get("/item-4/", headers={"Accept": "text/markdown"})
        assert resp.status_code == 404
        assert "Body of item 4" not in resp.text


class TestHtmlPages:
    def test_draft_is_404(self, client):
        resp = client.get("/item-4/")
        assert resp.status_code == 404
        assert "Body of item 4" not in resp.text

    def test_protected_without_teaser_is_404(self, client):
        resp = client.get("/item-5/")
        assert resp.status_code == 404
        assert "Body of item 5" not in resp.text

    def test_protected_with_teaser_hides_body(self, client, pipeline):
        pipeline.configure(Settings(show_protected_teaser=True))
        resp = client.get("/item-5/", headers={"Accept": "text/markdown"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "This content is password protected." in resp.text
        assert "Body of item 5" not in resp.text
        assert "rel=\"alternate\"" not in resp.text

    def test_disabled_type_is_404(self, client, source):
        source.add(make_item(20, type="product", slug="widget"))
        assert client.get("/widget/").status_code == 404

    def test_site_root_has_no_markdown_rendition(self, client, source):
        source.add(make_item(21, type="page", url=HOME + "/"))
        assert client.get("/.md").status_code == 404
        resp = client.get("/", headers={"Accept": "text/markdown"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "rel=\"alternate\"" not in resp.text

    def test_unknown_path(self, client):
        assert client.get("/nowhere/").status_code == 404


# ---------------------------------------------------------------------------
# Indexes and robots.txt
# ---------------------------------------------------------------------------

class TestIndexRoutes:
    def test_llms_txt(self, client):
        resp = client.get("/llms.txt")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "text/plain; charset=utf-8"
        assert resp.headers["x-robots-tag"] == "noindex"
        assert resp.text.startswith("# Tech Blog\n")

    def test_llms_txt_disabled(self, client, pipeline):
        pipeline.configure(Settings(enable_llms_txt=False))
        assert client.get("/llms.txt").status_code == 404
        assert client.get("/llms-full.txt").status_code == 404

    def test_llms_full_txt(self, client, pipeline):
        assert client.get("/llms-full.txt").text.startswith("# Tech Blog — Full Index\n")
        pipeline.configure(Settings(enable_llms_full_txt=False))
        assert client.get("/llms-full.txt").status_code == 404

    def test_sitemap(self, client):
        resp = client.get("/airc-sitemap.json")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/json; charset=utf-8"
        assert resp.json()["count"] == 3

    def test_robots(self, client):
        resp = client.get("/robots.txt")
        assert resp.text == "User-agent: *\nDisallow:\n\nLlms-txt: https://example.com/llms.txt\n"


# ---------------------------------------------------------------------------
# Admin API
# ---------------------------------------------------------------------------

class TestAdminApi:
    def test_requires_token(self, client):
        resp = client.post("/admin/items/1/preview")
        assert resp.status_code == 403
        assert resp.json() == {"success": False, "message": "Unauthorized."}
        assert client.post("/admin/items/1/preview", headers={"X-Admin-Token": "nope"}).status_code == 403

    def test_no_token_configured_denies_all(self, settings, source, cache):
        from llmready.pipeline import RenderPipeline

        client = TestClient(create_app(RenderPipeline(settings, SiteConfig(), source, cache)))
        assert client.post("/admin/cache/flush", headers=ADMIN).status_code == 403

    def test_preview(self, client):
        resp = client.post("/admin/items/1/preview", headers=ADMIN)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["markdown"].startswith("---\n")

    def test_preview_unknown_item(self, client):
        resp = client.post("/admin/items/999/preview", headers=ADMIN)
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    def test_cache_status_and_invalidate(self, client):
        assert client.get("/admin/items/1/cache", headers=ADMIN).json()["cached"] is False
        client.get("/item-1.md")
        assert client.get("/admin/items/1/cache", headers=ADMIN).json()["cached"] is True
        assert client.delete("/admin/items/1/cache", headers=ADMIN).json()["success"] is True
        assert client.get("/admin/items/1/cache", headers=ADMIN).json()["cached"] is False

    def test_flush_rate_limited(self, client, clock):
        assert client.post("/admin/cache/flush", headers=ADMIN).status_code == 200
        resp = client.post("/admin/cache/flush", headers=ADMIN)
        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "10"
        assert resp.json()["success"] is False
        clock.advance(10)
        assert client.post("/admin/cache/flush", headers=ADMIN).status_code == 200

    def test_save_settings(self, client, pipeline):
        client.get("/item-1.md")
        resp = client.put("/admin/settings", headers=ADMIN, json={"cache_ttl": "60", "image_handling": "bogus"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["settings"]["cache_ttl"] == 60
        assert body["settings"]["image_handling"] == "keep"
        assert pipeline.cache.stats().entries == 0

    def test_save_settings_clamps_infinite_ttl(self, client, pipeline):
        resp = client.put("/admin/settings", headers=ADMIN, json={"cache_ttl": "inf"})
        assert resp.status_code == 200
        assert resp.json()["settings"]["cache_ttl"] == 604800
        assert pipeline.settings.cache_ttl == 604800

    def test_mutation_event(self, client, pipeline):
        client.get("/item-1.md")
        resp = client.post("/admin/events", headers=ADMIN, json={"item_id": 1, "kind": "saved"})
        assert resp.json() == {"success": True, "invalidated": True}
        assert pipeline.cache_status(1) is False
