"""Decide which items may be exported and resolve per-request policy values."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from llmready.items import ItemStatus

if TYPE_CHECKING:
    from llmready.items import ContentItem
    from llmready.settings import Settings


class Eligibility(str, Enum):
    ELIGIBLE = "eligible"
    TEASER = "teaser"
    INELIGIBLE = "ineligible"


class PolicyResolver:
    """Eligibility rules over a fixed :class:`Settings` snapshot.

    An item is eligible when it is published, not password protected and of
    an enabled type.  Protected items of an enabled type take the teaser path
    when ``show_protected_teaser`` is on; everything else is ineligible.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def enabled_types(self) -> list[str]:
        return list(self.settings.enabled_types)

    def is_type_enabled(self, item_type: str) -> bool:
        return item_type in self.settings.enabled_types

    def is_eligible(self, item: ContentItem) -> bool:
        return (
            item.status is ItemStatus.PUBLISHED
            and not item.is_protected
            and self.is_type_enabled(item.type)
        )

    def resolve(self, item: ContentItem) -> Eligibility:
        if self.is_eligible(item):
            return Eligibility.ELIGIBLE
        if (
            item.is_protected
            and item.status in (ItemStatus.PUBLISHED, ItemStatus.PROTECTED)
            and self.is_type_enabled(item.type)
            and self.settings.show_protected_teaser
        ):
            return Eligibility.TEASER
        return Eligibility.INELIGIBLE

    # ------------------------------------------------------------------
    # Per-request values
    # ------------------------------------------------------------------

    @property
    def cache_ttl(self) -> int:
        return self.settings.cache_ttl

    @property
    def curated_limit(self) -> int:
        return self.settings.llms_txt_curated_limit

    @property
    def optional_limit(self) -> int:
        return self.settings.llms_txt_optional_limit

    @property
    def full_limit(self) -> int:
        return self.settings.llms_full_txt_post_limit

    @property
    def sitemap_limit(self) -> int:
        return self.settings.sitemap_post_limit
