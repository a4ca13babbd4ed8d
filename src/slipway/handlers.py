"""Request handler chain for the development server.

Every request runs through an ordered list of handlers. A handler either
returns a response or PASS, in which case the next handler gets its turn:

    hide_private -> hide_sources -> serve_static -> process -> fallback

``process`` is the rendering pipeline: resolve the normalized path against
the priority list, render the source, respond. Render errors are raised,
never turned into a pass.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from aiohttp import hdrs, web

from slipway.config import Project
from slipway.core.engine import RenderEngine, TemplateEngine
from slipway.core.paths import (
    build_priority_list,
    find_first_file,
    normalize_url,
    output_targets,
)
from slipway.core.renderer import PageRenderer, RenderResult
from slipway.core.types import URLPath

logger = logging.getLogger(__name__)


class _Pass(Enum):
    PASS = "pass"


PASS: Final = _Pass.PASS


@dataclass(frozen=True)
class ServeContext:
    """Per-project state shared read-only by all requests."""

    project: Project
    renderer: PageRenderer

    @property
    def engine(self) -> RenderEngine:
        return self.renderer.engine

    @classmethod
    def create(cls, project: Project, engine: RenderEngine | None = None) -> "ServeContext":
        engine = engine or TemplateEngine(project.public_path)
        return cls(project=project, renderer=PageRenderer(engine, project.globals))

    def resolve(self, path: URLPath) -> Path | None:
        """Resolve a normalized path to a source file.

        Candidates compiling to some other output (``about.html.md`` for
        ``/about.html``) are skipped.
        """
        targets = output_targets(path)
        priority_list = [
            candidate
            for candidate in build_priority_list(path, self.engine.source_extensions)
            if self.engine.output_path(candidate) in targets
        ]
        return find_first_file(self.project.public_path, priority_list)


@dataclass(frozen=True)
class ServeRequest:
    """A request together with its normalized path."""

    request: web.Request
    path: URLPath

    @property
    def relative_path(self) -> str:
        return self.path.lstrip("/")


HandlerResult = web.StreamResponse | _Pass
Handler = Callable[[ServeRequest, ServeContext], Awaitable[HandlerResult]]


class HandlerChain:
    """Runs handlers in order until one produces a response."""

    def __init__(self, handlers: Sequence[Handler]) -> None:
        self._handlers = tuple(handlers)

    @property
    def handlers(self) -> tuple[Handler, ...]:
        return self._handlers

    async def handle(
        self,
        request: web.Request,
        context: ServeContext,
        raw_path: str | None = None,
    ) -> HandlerResult:
        """Run the chain for one request.

        Args:
            request: Incoming request
            context: Project serve context
            raw_path: Path to serve instead of the request's own (mounting)

        Returns:
            The first response produced, or PASS if every handler passed
        """
        serve_request = ServeRequest(
            request=request,
            path=normalize_url(request.raw_path if raw_path is None else raw_path),
        )
        for handler in self._handlers:
            result = await handler(serve_request, context)
            if result is not PASS:
                return result
        return PASS


async def hide_private(serve_request: ServeRequest, context: ServeContext) -> HandlerResult:
    """Answer requests for partials, layouts and dotfiles with not found."""
    if context.engine.should_ignore(serve_request.relative_path):
        return await not_found(serve_request, context)
    return PASS


async def hide_sources(serve_request: ServeRequest, context: ServeContext) -> HandlerResult:
    """Answer requests naming a source file directly with not found."""
    if context.engine.is_renderable(serve_request.relative_path):
        return await not_found(serve_request, context)
    return PASS


async def serve_static(serve_request: ServeRequest, context: ServeContext) -> HandlerResult:
    """Serve a matched file that needs no rendering as-is."""
    source = _resolve_public(serve_request, context)
    if source is None or context.engine.is_renderable(source):
        return PASS
    return web.FileResponse(source)


async def process(serve_request: ServeRequest, context: ServeContext) -> HandlerResult:
    """Resolve, render and respond.

    Raises:
        RenderError: If the matched source fails to render
    """
    source = _resolve_public(serve_request, context)
    if source is None or not context.engine.is_renderable(source):
        return PASS

    # Keep rendering if the client goes away; the result is dropped below
    render = asyncio.ensure_future(context.renderer.render(source))
    try:
        result = await asyncio.shield(render)
    except asyncio.CancelledError:
        render.add_done_callback(_discard_render)
        raise
    if result is None:
        return PASS

    if _client_gone(serve_request.request):
        logger.debug(f"Client disconnected, discarding render of {source}")
        return web.Response(status=499, reason="Client Closed Request")

    return render_response(result)


async def fallback(serve_request: ServeRequest, context: ServeContext) -> HandlerResult:
    """Serve the single-page-app fallback (200.*) or the not-found page."""
    response = await _render_special(URLPath("/200"), 200, context)
    if response is not None:
        return response
    return await not_found(serve_request, context)


async def not_found(serve_request: ServeRequest, context: ServeContext) -> web.StreamResponse:
    """Respond 404, using the project's 404 page when it has one."""
    response = await _render_special(URLPath("/404"), 404, context)
    if response is not None:
        return response
    return web.Response(status=404, text="Not Found")


def render_response(result: RenderResult, status: int = 200) -> web.Response:
    """Build the HTTP response for a rendered page."""
    return web.Response(
        body=result.body,
        status=status,
        headers={
            hdrs.CONTENT_TYPE: result.content_type,
            hdrs.CONTENT_LENGTH: str(result.content_length),
        },
    )


DEFAULT_HANDLERS: tuple[Handler, ...] = (hide_private, hide_sources, serve_static, process, fallback)

# Embedded in another application: hide sources, pass everything unanswered on
MOUNT_HANDLERS: tuple[Handler, ...] = (hide_sources, serve_static, process)


def _resolve_public(serve_request: ServeRequest, context: ServeContext) -> Path | None:
    if context.engine.should_ignore(serve_request.relative_path):
        return None
    return context.resolve(serve_request.path)


async def _render_special(
    path: URLPath,
    status: int,
    context: ServeContext,
) -> web.StreamResponse | None:
    source = context.resolve(path)
    if source is None:
        return None
    if not context.engine.is_renderable(source):
        return web.FileResponse(source, status=status)
    result = await context.renderer.render(source)
    if result is None:
        return None
    return render_response(result, status)


def _discard_render(render: "asyncio.Future[RenderResult | None]") -> None:
    """Consume the outcome of a render whose request was cancelled."""
    if render.cancelled():
        return
    error = render.exception()
    if error is not None:
        logger.warning(f"Render failed after the request was cancelled: {error}")
    else:
        logger.debug("Request cancelled, discarding finished render")


def _client_gone(request: web.Request) -> bool:
    transport = request.transport
    return transport is None or transport.is_closing()
