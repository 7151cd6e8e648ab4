"""Settings and site configuration for llmready.

Settings are loaded once per request/command and passed explicitly into each
component.  Raw input (YAML files, admin form payloads) goes through
:func:`coerce_settings`, which never fails: malformed values are clamped to
the nearest valid value or replaced by the default.
"""

from __future__ import annotations

import logging
import math
import re
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------
DEFAULT_CACHE_TTL = 86_400
MAX_CACHE_TTL = 168 * 3600  # one week
MAX_ITEM_LIMIT = 500

# Primary content type: the only one with sticky-item prioritisation.
PRIMARY_TYPE = "post"

# HTTP cache lifetime advertised to clients
RESPONSE_MAX_AGE = 3600


class ImageHandling(str, Enum):
    KEEP = "keep"
    ALT_ONLY = "alt_only"
    REMOVE = "remove"


class Settings(BaseModel):
    """Process-wide export policy."""

    enabled_types: list[str] = Field(default_factory=lambda: ["post", "page"])

    # Feature toggles
    enable_content_negotiation: bool = True
    enable_llms_txt: bool = True
    enable_llms_full_txt: bool = True
    enable_alternate_links: bool = True
    enable_robots_txt: bool = True
    show_protected_teaser: bool = False

    # Cache lifetime in seconds; 0 disables caching
    cache_ttl: int = DEFAULT_CACHE_TTL

    # Index limits
    llms_txt_curated_limit: int = 10
    llms_txt_optional_limit: int = 10
    llms_txt_show_taxonomies: bool = True
    llms_txt_taxonomies: list[str] = Field(default_factory=lambda: ["category", "post_tag"])
    llms_full_txt_post_limit: int = 100
    sitemap_post_limit: int = 100

    # Content policy
    frontmatter_meta_keys: list[str] = Field(default_factory=list)
    image_handling: ImageHandling = ImageHandling.KEEP
    strip_shortcodes: bool = True


class SiteConfig(BaseModel):
    """Identity of the site being exported, plus host wiring options."""

    name: str = ""
    description: str = ""
    home_url: str = "http://localhost"
    public: bool = True
    sitemap_path: str = "airc-sitemap.json"
    front_page_id: int | None = None
    posts_page_id: int | None = None
    admin_token: str | None = None
    teaser_text: str = "This content is password protected."
    flush_cooldown: float = 10.0
    type_labels: dict[str, str] = Field(
        default_factory=lambda: {"post": "Posts", "page": "Pages"},
    )
    taxonomy_labels: dict[str, str] = Field(
        default_factory=lambda: {"category": "Categories", "post_tag": "Tags"},
    )

    def label_for_type(self, item_type: str) -> str:
        return self.type_labels.get(item_type) or item_type.replace("_", " ").title()

    def label_for_taxonomy(self, taxonomy: str) -> str:
        return self.taxonomy_labels.get(taxonomy) or taxonomy.replace("_", " ").title()

    def excluded_ids(self) -> set[int]:
        return {i for i in (self.front_page_id, self.posts_page_id) if i and i > 0}


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

_LIST_SPLIT_RE = re.compile(r"[,\n]")
_BOOL_FIELDS = (
    "enable_content_negotiation",
    "enable_llms_txt",
    "enable_llms_full_txt",
    "enable_alternate_links",
    "enable_robots_txt",
    "show_protected_teaser",
    "llms_txt_show_taxonomies",
    "strip_shortcodes",
)
_LIMIT_FIELDS = (
    "llms_txt_curated_limit",
    "llms_txt_optional_limit",
    "llms_full_txt_post_limit",
    "sitemap_post_limit",
)
_FALSY_STRINGS = frozenset({"", "0", "false", "no", "off"})


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    return bool(value)


def _to_int(value: Any, default: int, low: int, high: int) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug("Rejected integer setting %r; using %d", value, default)
        return default
    except OverflowError:
        return high if value > 0 else low
    if math.isnan(number):
        logger.debug("Rejected integer setting %r; using %d", value, default)
        return default
    if math.isinf(number):
        return high if number > 0 else low
    return max(low, min(int(number), high))


def _to_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = _LIST_SPLIT_RE.split(value)
    elif isinstance(value, (list, tuple, set)):
        parts = [str(v) for v in value if v is not None]
    else:
        return []
    seen: list[str] = []
    for part in parts:
        cleaned = part.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def coerce_settings(raw: dict[str, Any] | None) -> Settings:
    """Build :class:`Settings` from loosely-typed *raw* input.

    Missing keys take their defaults; a legacy ``llms_txt_post_limit`` key
    maps onto ``llms_full_txt_post_limit`` when the latter is absent.
    """
    defaults = Settings()
    data = dict(raw or {})

    if "llms_txt_post_limit" in data and "llms_full_txt_post_limit" not in data:
        data["llms_full_txt_post_limit"] = data["llms_txt_post_limit"]

    values: dict[str, Any] = {}

    if "enabled_types" in data:
        values["enabled_types"] = _to_str_list(data["enabled_types"])

    for name in _BOOL_FIELDS:
        if name in data:
            values[name] = _to_bool(data[name])

    if "cache_ttl" in data:
        values["cache_ttl"] = _to_int(data["cache_ttl"], DEFAULT_CACHE_TTL, 0, MAX_CACHE_TTL)

    for name in _LIMIT_FIELDS:
        if name in data:
            values[name] = _to_int(data[name], getattr(defaults, name), 0, MAX_ITEM_LIMIT)

    if "llms_txt_taxonomies" in data:
        values["llms_txt_taxonomies"] = _to_str_list(data["llms_txt_taxonomies"])

    if "frontmatter_meta_keys" in data:
        values["frontmatter_meta_keys"] = _to_str_list(data["frontmatter_meta_keys"])

    if "image_handling" in data:
        try:
            values["image_handling"] = ImageHandling(str(data["image_handling"]).strip())
        except ValueError:
            logger.debug("Rejected image_handling %r; using keep", data["image_handling"])
            values["image_handling"] = ImageHandling.KEEP

    return defaults.model_copy(update=values)


# ---------------------------------------------------------------------------
# YAML config files
# ---------------------------------------------------------------------------

def load_config(path: str | Path | None) -> tuple[SiteConfig, Settings]:
    """Load ``site:`` and ``settings:`` sections from a YAML file.

    A missing *path* (or ``None``) yields the defaults.
    """
    if path is None or not Path(path).exists():
        return SiteConfig(), Settings()

    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        logger.warning("Config %s is not a mapping; using defaults", path)
        return SiteConfig(), Settings()

    site_raw = data.get("site", {})
    settings_raw = data.get("settings", {})
    site = SiteConfig(**site_raw) if isinstance(site_raw, dict) else SiteConfig()
    settings = coerce_settings(settings_raw if isinstance(settings_raw, dict) else {})
    return site, settings


def save_settings(path: str | Path, settings: Settings) -> None:
    """Write *settings* into the ``settings:`` section of the YAML file at *path*."""
    target = Path(path)
    data: dict[str, Any] = {}
    if target.exists():
        loaded = yaml.safe_load(target.read_text(encoding="utf-8")) or {}
        if isinstance(loaded, dict):
            data = loaded
    data["settings"] = settings.model_dump(mode="json")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    logger.info("Settings saved to %s", target)
