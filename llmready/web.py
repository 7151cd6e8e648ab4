"""FastAPI application exposing Markdown renditions, indexes and admin operations.

Usage::

    from llmready.web import create_app

    app = create_app(pipeline)
    # uvicorn.run(app)

Public routes answer plain text / Markdown; ``/admin`` routes answer JSON
``{"success": ..., ...}`` and require the ``X-Admin-Token`` header.
"""

from __future__ import annotations

import hmac
import html
import logging
import math
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from llmready.eligibility import Eligibility
from llmready.errors import LlmReadyError, NotFoundError, RateLimitedError, UnauthorizedError
from llmready.headers import (
    JSON_CONTENT_TYPE,
    MARKDOWN_CONTENT_TYPE,
    NOT_FOUND_BODY,
    TEXT_CONTENT_TYPE,
    base_headers,
    markdown_headers,
    safe_headers,
)
from llmready.integration import alternate_link_tag, is_site_root, robots_txt, wants_markdown
from llmready.items import ContentMutationEvent
from llmready.settings import RESPONSE_MAX_AGE

if TYPE_CHECKING:
    from collections.abc import Callable

    from llmready.items import ContentItem
    from llmready.pipeline import RenderPipeline, RenderResult

logger = logging.getLogger(__name__)


def default_html_renderer(item: ContentItem, head: str) -> str:
    """Minimal HTML page used when no host renderer is supplied."""
    title = html.escape(item.title)
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        f"<meta charset=\"utf-8\" />\n<title>{title}</title>\n{head}\n"
        f"</head>\n<body>\n<h1>{title}</h1>\n{item.body}\n</body>\n</html>\n"
    )


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

def markdown_response(pipeline: RenderPipeline, result: RenderResult) -> Response:
    headers = markdown_headers(result.last_modified)
    if not result.teaser:
        headers = pipeline.hooks.apply_headers(headers, result.item)
    return Response(content=result.document, headers=safe_headers(headers))


def not_found_markdown() -> Response:
    headers = {"Content-Type": MARKDOWN_CONTENT_TYPE}
    return Response(content=NOT_FOUND_BODY, status_code=404, headers=headers)


def _text_response(body: str, content_type: str = TEXT_CONTENT_TYPE) -> Response:
    return Response(content=body, headers=safe_headers(base_headers(content_type)))


def _not_found_text() -> Response:
    return Response(content="Not Found\n", status_code=404, media_type="text/plain")


def _not_found_html() -> HTMLResponse:
    return HTMLResponse("<h1>Not Found</h1>", status_code=404)


def _default_robots(public: bool) -> str:
    return "User-agent: *\nDisallow:\n" if public else "User-agent: *\nDisallow: /\n"


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    pipeline: RenderPipeline,
    html_renderer: Callable[[ContentItem, str], str] | None = None,
) -> FastAPI:
    renderer = html_renderer or default_html_renderer
    app = FastAPI(title="llmready", docs_url=None, redoc_url=None)
    app.state.pipeline = pipeline

    @app.exception_handler(LlmReadyError)
    async def _handle_error(request: Request, exc: LlmReadyError) -> JSONResponse:
        headers: dict[str, str] = {}
        if isinstance(exc, RateLimitedError):
            headers["Retry-After"] = str(max(1, math.ceil(exc.retry_after)))
        return JSONResponse(
            {"success": False, "message": exc.message},
            status_code=exc.status,
            headers=headers,
        )

    app.include_router(_admin_router(pipeline), prefix="/admin")

    # -- indexes -----------------------------------------------------------

    @app.get("/llms.txt")
    def llms_txt() -> Response:
        if not pipeline.settings.enable_llms_txt:
            return _not_found_text()
        return _text_response(pipeline.indexes.llms_txt())

    @app.get("/llms-full.txt")
    def llms_full_txt() -> Response:
        settings = pipeline.settings
        if not (settings.enable_llms_full_txt and settings.enable_llms_txt):
            return _not_found_text()
        return _text_response(pipeline.indexes.llms_full_txt())

    def sitemap_json() -> Response:
        headers = base_headers(JSON_CONTENT_TYPE)
        headers["Cache-Control"] = f"public, max-age={RESPONSE_MAX_AGE}"
        return Response(content=pipeline.indexes.sitemap_json(), headers=safe_headers(headers))

    app.add_api_route(f"/{pipeline.site.sitemap_path.lstrip('/')}", sitemap_json, methods=["GET"])

    @app.get("/robots.txt")
    def robots() -> Response:
        output = robots_txt(_default_robots(pipeline.site.public), pipeline.settings, pipeline.site)
        return Response(content=output, media_type="text/plain")

    # -- per-item ----------------------------------------------------------

    @app.get("/{path:path}")
    def content(path: str, accept: str | None = Header(default=None)) -> Response:
        if path.endswith(".md"):
            try:
                result = pipeline.serve_path(path[: -len(".md")])
            except NotFoundError as exc:
                logger.debug("Markdown request 404: %s", exc)
                return not_found_markdown()
            return markdown_response(pipeline, result)

        item = pipeline.source.resolve_path(path)
        if item is None:
            return _not_found_html()

        verdict = pipeline.resolver.resolve(item)
        if verdict is Eligibility.INELIGIBLE:
            return _not_found_html()
        if verdict is Eligibility.TEASER:
            teaser = f"<p>{html.escape(pipeline.site.teaser_text)}</p>"
            item = item.model_copy(update={"body": teaser})

        if (
            verdict is Eligibility.ELIGIBLE
            and pipeline.settings.enable_content_negotiation
            and wants_markdown(accept)
            and not is_site_root(item.url, pipeline.site.home_url)
        ):
            response = markdown_response(pipeline, pipeline.serve(item))
            response.headers["Vary"] = "Accept"
            return response

        head = "" if is_site_root(item.url, pipeline.site.home_url) else alternate_link_tag(
            item, pipeline.settings, pipeline.resolver,
        )
        response = HTMLResponse(renderer(item, head))
        if pipeline.settings.enable_content_negotiation:
            response.headers["Vary"] = "Accept"
        return response

    return app


# ---------------------------------------------------------------------------
# Admin routes
# ---------------------------------------------------------------------------

def _admin_router(pipeline: RenderPipeline) -> APIRouter:
    def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
        expected = pipeline.site.admin_token
        if not expected or not x_admin_token:
            raise UnauthorizedError("Unauthorized.")
        if not hmac.compare_digest(expected.encode(), x_admin_token.encode()):
            raise UnauthorizedError("Unauthorized.")

    router = APIRouter(dependencies=[Depends(require_admin)])

    @router.post("/items/{item_id}/preview")
    def preview(item_id: int) -> dict[str, Any]:
        return {"success": True, "markdown": pipeline.preview(item_id)}

    @router.get("/items/{item_id}/cache")
    def cache_status(item_id: int) -> dict[str, Any]:
        return {"success": True, "cached": pipeline.cache_status(item_id)}

    @router.delete("/items/{item_id}/cache")
    def invalidate(item_id: int) -> dict[str, Any]:
        pipeline.invalidate(item_id)
        return {"success": True, "message": "Cache cleared."}

    @router.post("/cache/flush")
    def flush() -> dict[str, Any]:
        pipeline.flush()
        return {"success": True, "message": "Cache cleared successfully."}

    @router.put("/settings")
    def update_settings(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        settings = pipeline.save_settings(payload)
        return {"success": True, "settings": settings.model_dump(mode="json")}

    @router.post("/events")
    def content_event(event: ContentMutationEvent) -> dict[str, Any]:
        return {"success": True, "invalidated": pipeline.handle_event(event)}

    return router
