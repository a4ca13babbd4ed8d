"""aiohttp server for Slipway.

Application factory for standalone serving, and a middleware for mounting a
project inside another aiohttp application.
"""

import html
import logging
from collections.abc import Awaitable, Callable, Sequence

from aiohttp import hdrs, web

from slipway.app_keys import chain_key, context_key, project_key
from slipway.config import Project, ServerSettings
from slipway.core.engine import RenderEngine
from slipway.errors import RenderError
from slipway.handlers import (
    DEFAULT_HANDLERS,
    MOUNT_HANDLERS,
    PASS,
    Handler,
    HandlerChain,
    ServeContext,
)

logger = logging.getLogger(__name__)

AiohttpHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def render_error_middleware(
    request: web.Request,
    handler: AiohttpHandler,
) -> web.StreamResponse:
    """Turn render failures into a 500 error page."""
    try:
        return await handler(request)
    except RenderError as e:
        logger.error(f"Failed to render {request.path}: {e}")
        return web.Response(status=500, text=_error_page(e), content_type="text/html")


async def serve_project(request: web.Request) -> web.StreamResponse:
    """Run the handler chain for a request.

    The default chain always answers; a chain without a fallback handler
    ends in a plain 404.
    """
    result = await request.app[chain_key].handle(request, request.app[context_key])
    if result is PASS:
        raise web.HTTPNotFound()
    return result


def create_app(
    project: Project,
    *,
    engine: RenderEngine | None = None,
    handlers: Sequence[Handler] = DEFAULT_HANDLERS,
) -> web.Application:
    """Create aiohttp application serving a single project.

    Args:
        project: Loaded project
        engine: Render engine (default: TemplateEngine over the public dir)
        handlers: Request handler chain

    Returns:
        Configured aiohttp application
    """
    app = web.Application(middlewares=[render_error_middleware])

    app[project_key] = project
    app[context_key] = ServeContext.create(project, engine)
    app[chain_key] = HandlerChain(handlers)

    # Catch-all, also answers HEAD
    app.router.add_get("/{path:.*}", serve_project)

    return app


def mount(
    project: Project,
    prefix: str | None = None,
    *,
    engine: RenderEngine | None = None,
) -> AiohttpHandler:
    """Offer the rendering pipeline as middleware for another application.

    Requests outside the prefix, non-GET requests and requests the project
    cannot answer go on to the host application's handler. Requests naming
    a source file (``/docs/page.md``) get a 404, as on the standalone
    server. Render errors propagate to the host application.

    Args:
        project: Loaded project
        prefix: URL prefix to serve the project under (e.g. "/docs")
        engine: Render engine (default: TemplateEngine over the public dir)

    Returns:
        aiohttp middleware
    """
    context = ServeContext.create(project, engine)
    chain = HandlerChain(MOUNT_HANDLERS)
    mount_point = prefix.rstrip("/") if prefix else ""

    @web.middleware
    async def slipway_middleware(
        request: web.Request,
        handler: AiohttpHandler,
    ) -> web.StreamResponse:
        if request.method not in (hdrs.METH_GET, hdrs.METH_HEAD):
            return await handler(request)

        raw_path = request.raw_path
        if mount_point:
            if raw_path != mount_point and not raw_path.startswith(
                (f"{mount_point}/", f"{mount_point}?"),
            ):
                return await handler(request)
            raw_path = raw_path[len(mount_point) :] or "/"

        result = await chain.handle(request, context, raw_path)
        if result is PASS:
            return await handler(request)
        return result

    return slipway_middleware


def run_server(project: Project, settings: ServerSettings) -> None:
    """Run the server.

    Args:
        project: Loaded project
        settings: Host and port to bind to
    """
    app = create_app(project)
    web.run_app(app, host=settings.host, port=settings.port)


def _error_page(error: RenderError) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html><head><title>Render error</title></head><body>\n"
        f"<h1>Render error</h1>\n<p>{html.escape(str(error.source_path))}</p>\n"
        f"<pre>{html.escape(error.message)}</pre>\n"
        "</body></html>\n"
    )
