"""llmready - serve Markdown renditions of site content plus llms.txt indexes.

Rendering a single item::

    from llmready import InMemoryCacheStore, InMemoryContentSource, RenderPipeline
    from llmready import Settings, SiteConfig

    source = InMemoryContentSource(items, home_url="https://example.com")
    pipeline = RenderPipeline(
        Settings(), SiteConfig(name="My Blog", home_url="https://example.com"),
        source, InMemoryCacheStore(),
    )
    print(pipeline.render_item(source.get(42)))

Indexes and HTTP::

    print(pipeline.indexes.llms_txt())

    from llmready.web import create_app
    app = create_app(pipeline)

Extension hooks::

    from llmready import Hooks

    class AddLicense:
        name = "add_license"
        def fields(self, fields, item):
            fields["license"] = "CC-BY-4.0"
            return fields

    hooks = Hooks()
    hooks.add_frontmatter(AddLicense())
"""

from llmready.cache import FileCacheStore, InMemoryCacheStore
from llmready.errors import LlmReadyError, NotFoundError, RateLimitedError, UnauthorizedError
from llmready.items import ContentItem, ContentMutationEvent, ItemStatus, MutationKind
from llmready.pipeline import RenderPipeline
from llmready.plugins import Hooks
from llmready.repository import InMemoryContentSource, load_content_file
from llmready.settings import Settings, SiteConfig, coerce_settings, load_config

__version__ = "0.1.0"
__all__ = [
    "ContentItem",
    "ContentMutationEvent",
    "FileCacheStore",
    "Hooks",
    "InMemoryCacheStore",
    "InMemoryContentSource",
    "ItemStatus",
    "LlmReadyError",
    "MutationKind",
    "NotFoundError",
    "RateLimitedError",
    "RenderPipeline",
    "Settings",
    "SiteConfig",
    "UnauthorizedError",
    "coerce_settings",
    "load_config",
    "load_content_file",
]
