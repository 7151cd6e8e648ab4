"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from llmready.cache import FlushGuard, InMemoryCacheStore
from llmready.items import ContentItem, ItemStatus
from llmready.pipeline import RenderPipeline
from llmready.repository import InMemoryContentSource
from llmready.settings import Settings, SiteConfig

HOME = "https://example.com"
BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)


class FakeClock:
    """Monotonic stand-in advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(item_id: int, **overrides: Any) -> ContentItem:
    slug = overrides.pop("slug", f"item-{item_id}")
    data: dict[str, Any] = {
        "id": item_id,
        "status": ItemStatus.PUBLISHED,
        "type": "post",
        "title": f"Item {item_id}",
        "body": f"<p>Body of item {item_id}.</p>",
        "created_at": BASE_TIME + timedelta(days=item_id),
        "modified_at": BASE_TIME + timedelta(days=item_id, hours=1),
        "author": "Jane Smith",
        "url": f"{HOME}/{slug}/",
    }
    data.update(overrides)
    return ContentItem(**data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def site() -> SiteConfig:
    return SiteConfig(
        name="Tech Blog",
        description="Notes on Python and the web.",
        home_url=HOME,
        admin_token="s3cret",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def items() -> list[ContentItem]:
    return [
        make_item(1, title="First post", terms={"category": ["Python"], "post_tag": ["web"]}),
        make_item(2, title="Second post", terms={"category": ["Python"]}),
        make_item(3, type="page", title="About", slug="about"),
        make_item(4, status=ItemStatus.DRAFT, title="Unfinished"),
        make_item(5, title="Members only", password="hunter2"),
    ]


@pytest.fixture
def source(items: list[ContentItem]) -> InMemoryContentSource:
    return InMemoryContentSource(items, home_url=HOME)


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def pipeline(
    settings: Settings,
    site: SiteConfig,
    source: InMemoryContentSource,
    cache: InMemoryCacheStore,
    clock: FakeClock,
) -> RenderPipeline:
    return RenderPipeline(
        settings, site, source, cache, flush_guard=FlushGuard(site.flush_cooldown, clock),
    )
