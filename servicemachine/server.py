"""
ASGI adapter for ServiceApplication.

This module converts between the ASGI protocol and the dispatcher's
Request/Response objects so a ServiceApplication can run on any
ASGI-compatible server (for example ``uvicorn module:asgi_app``).
"""

import json
import logging
import urllib.parse
from typing import Any, Dict, List

from .application import ServiceApplication
from .models import HTTPMethod, Request, Response

logger = logging.getLogger(__name__)


class ASGIAdapter:
    """
    ASGI adapter that converts between ASGI protocol and dispatcher Request/Response objects.

    The dispatcher itself is synchronous; each ASGI call executes one request.
    """

    def __init__(self, app: ServiceApplication):
        """Initialize the ASGI adapter with a ServiceApplication."""
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive, send):
        """ASGI application entry point."""
        if scope["type"] != "http":
            # Only handle HTTP requests
            await self._send(send, Response(404, b"Not Found", content_type="text/plain"))
            return

        try:
            method = HTTPMethod(scope["method"])
        except ValueError:
            await self._send(send, Response(405, b"Method Not Allowed", content_type="text/plain"))
            return

        request = await self._asgi_to_request(method, scope, receive)

        try:
            response = self.app.execute(request)
        except Exception as e:
            logger.error(f"Unhandled exception processing {method.value} {request.path}: {e}")
            response = Response(
                500,
                json.dumps({"error": "Internal server error"}).encode("utf-8"),
                content_type="application/json",
            )

        await self._send(send, response)

    async def _asgi_to_request(self, method: HTTPMethod, scope: Dict[str, Any], receive) -> Request:
        """Convert ASGI scope and body to a Request."""
        query_string = scope.get("query_string", b"").decode("utf-8")

        # Parse headers - normalize all to lowercase for case-insensitive matching
        headers = {}
        for header_name, header_value in scope.get("headers", []):
            headers[header_name.decode("latin-1").lower()] = header_value.decode("latin-1")

        # Repeated keys are kept for collection parameters
        query_params: Dict[str, List[str]] = {}
        if query_string:
            query_params = urllib.parse.parse_qs(query_string, keep_blank_values=True)

        # Read body
        body = b""
        more_body = True
        while more_body:
            message = await receive()
            body += message.get("body", b"")
            more_body = message.get("more_body", False)

        return Request(
            method=method,
            path=scope["path"],
            headers=headers,
            query_params=query_params,
            body=body or None,
        )

    async def _send(self, send, response: Response):
        """Convert a Response to ASGI messages."""
        body = response.body or b""
        headers = [
            [name.lower().encode("latin-1"), str(value).encode("latin-1")]
            for name, value in (response.headers or {}).items()
            if name.lower() != "content-length"
        ]
        if response.status_code != 204:
            headers.append([b"content-length", str(len(body)).encode("latin-1")])

        await send({
            "type": "http.response.start",
            "status": response.status_code,
            "headers": headers,
        })
        await send({
            "type": "http.response.body",
            "body": body,
        })


def create_asgi_app(app: ServiceApplication) -> ASGIAdapter:
    """
    Create an ASGI application from a ServiceApplication.

    Args:
        app: The ServiceApplication to wrap

    Returns:
        An ASGI-compatible application
    """
    return ASGIAdapter(app)
