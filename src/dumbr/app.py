"""
FastAPI application for the mock server.

Every request goes through one catch-all endpoint. The endpoint looks up
the route bound to the exact method and path and hands it to the renderer;
anything without a bound route gets the framework's default 404.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import Response

from . import __version__
from .dispatcher import RouteTable
from .renderer import ResponseRenderer
from .template_store import TemplateStore

logger = logging.getLogger(__name__)

# Methods the catch-all accepts. Anything else is answered by method_not_found
CATCH_ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "HEAD", "PATCH", "OPTIONS"]


def create_app(
    templates: TemplateStore,
    route_table: RouteTable,
    log: Optional[logging.Logger] = None,
) -> FastAPI:
    """
    Build the ASGI application.

    Args:
        templates: Compiled response templates
        route_table: Routes built from the configuration file
        log: Logger passed on to the renderer (defaults to the module logger)

    Returns:
        FastAPI application serving the configured routes
    """
    log = log or logger

    # Docs and OpenAPI routes are disabled so they can never shadow a mock path
    app = FastAPI(
        title="dumbr",
        description="Configuration driven HTTP mock server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.templates = templates
    app.state.route_table = route_table
    app.state.renderer = ResponseRenderer(templates, log)

    # The router raises 405 for methods outside CATCH_ALL_METHODS
    @app.exception_handler(405)
    async def method_not_found(request: Request, exc: HTTPException) -> Response:
        """Answer unroutable methods like any other unmatched request."""
        return await http_exception_handler(request, HTTPException(status_code=404))

    @app.api_route("/{path:path}", methods=CATCH_ALL_METHODS, include_in_schema=False)
    async def dispatch(request: Request) -> Response:
        """Render the template bound to this exact method and path."""
        route = request.app.state.route_table.resolve(request.method, request.url.path)
        if route is None:
            raise HTTPException(status_code=404)
        return await request.app.state.renderer.render(request, route)

    return app
