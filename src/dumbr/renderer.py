"""
Response Renderer

Renders the template bound to a route with the incoming request as the
template's data context, streaming output as the template produces it.

If rendering fails before any output exists the client gets a fixed,
detail-free 500 response. Once output has started streaming the status
line is already on the wire, so a later failure is logged and the stream
simply ends.
"""

import logging
import uuid
from typing import Any, Dict, Iterator, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from .dispatcher import BoundRoute
from .template_store import TemplateStore

logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = "500 Internal Server Error\n"
RENDERED_MEDIA_TYPE = "text/plain; charset=utf-8"


def internal_server_error() -> Response:
    """The fixed 500 response sent when a template cannot be rendered."""
    return PlainTextResponse(
        INTERNAL_ERROR_BODY,
        status_code=500,
        headers={"X-Content-Type-Options": "nosniff"},
    )


def remote_addr(request: Request) -> str:
    if request.client is None:
        return ""
    return f"{request.client.host}:{request.client.port}"


def request_uri(request: Request) -> str:
    """Path plus query string, as sent on the request line."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def build_context(request: Request) -> Dict[str, Any]:
    """
    Collect the request attributes templates can reference.

    The Starlette request itself is available as ``request``; the other
    names are shortcuts for the attributes mock responses use most.
    """
    body = await request.body()
    return {
        "request": request,
        "method": request.method,
        "url": str(request.url),
        "path": request.url.path,
        "request_uri": request_uri(request),
        "query": dict(request.query_params),
        "query_params": request.query_params,
        "headers": dict(request.headers),
        "cookies": dict(request.cookies),
        "remote_addr": remote_addr(request),
        "host": request.headers.get("host", ""),
        "referer": request.headers.get("referer", ""),
        "user_agent": request.headers.get("user-agent", ""),
        "proto": f"HTTP/{request.scope.get('http_version', '1.1')}",
        "body": body.decode("utf-8", errors="replace"),
    }


def dump_request(request: Request, body: str) -> str:
    """Request line, headers and body in wire order, for debug logging."""
    lines = [f"{request.method} {request_uri(request)} HTTP/{request.scope.get('http_version', '1.1')}"]
    lines.extend(f"{name}: {value}" for name, value in request.headers.items())
    return "\r\n".join(lines) + "\r\n\r\n" + body


class ResponseRenderer:
    """Turns a matched request into a rendered template response."""

    def __init__(self, templates: TemplateStore, log: Optional[logging.Logger] = None):
        self.templates = templates
        self.log = log or logger

    def log_request(self, request: Request, request_id: str) -> None:
        self.log.info(
            f"REQUEST method:{request.method}, remoteAddr:{remote_addr(request)}, "
            f"referer:{request.headers.get('referer', '')}, "
            f"userAgent:{request.headers.get('user-agent', '')}, "
            f"uuid:{request_id}, requestURI:{request_uri(request)}"
        )

    async def render(self, request: Request, route: BoundRoute) -> Response:
        """
        Render route's template for request.

        Args:
            request: The incoming request, used whole as the render context
            route: The route the request matched

        Returns:
            A streaming 200 response, or the fixed 500 response
        """
        request_id = str(uuid.uuid4())
        self.log_request(request, request_id)

        context = await build_context(request)
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(f"REQUEST uuid:{request_id}\n{dump_request(request, context['body'])}")

        try:
            chunks = self.templates.render(route.template_name, context)
            first = next(chunks, None)
        except Exception as e:
            self.log.error(
                f"Failed in execution of template with name:{route.template_name}, "
                f"uuid:{request_id}, error:{e}"
            )
            return internal_server_error()

        return StreamingResponse(
            self._stream(first, chunks, route, request_id),
            media_type=RENDERED_MEDIA_TYPE,
        )

    def _stream(self, first: Optional[str], rest: Iterator[str], route: BoundRoute, request_id: str) -> Iterator[str]:
        if first is None:
            return
        yield first
        try:
            for chunk in rest:
                yield chunk
        except Exception as e:
            self.log.error(
                f"Failed in execution of template with name:{route.template_name} after output began, "
                f"uuid:{request_id}, error:{e}"
            )
