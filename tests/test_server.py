"""Tests for the ASGI adapter."""

import asyncio
import json

from servicemachine import ServiceApplication, create_asgi_app
from tests.framework.services import web_configuration


def call(scope, body=b""):
    """Run one ASGI request and return the sent messages."""
    app = create_asgi_app(ServiceApplication(web_configuration()))
    messages = []
    chunks = [body[:3], body[3:]] if body else [b""]

    async def receive():
        chunk = chunks.pop(0)
        return {"type": "http.request", "body": chunk, "more_body": bool(chunks)}

    async def send(message):
        messages.append(message)

    asyncio.run(app(scope, receive, send))
    return messages


def http_scope(method, path, query_string=b"", headers=None):
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": headers or [],
    }


class TestASGIAdapter:

    def test_response_messages(self):
        start, body = call(http_scope("GET", "/path/thing/1"))

        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        headers = dict(start["headers"])
        assert headers[b"content-type"] == b"application/json"
        assert headers[b"content-length"] == str(len(body["body"])).encode()
        assert json.loads(body["body"])["name"] == "first"

    def test_repeated_query_keys(self):
        _, body = call(http_scope("GET", "/path/things", b"tag=a&tag=b"))

        assert json.loads(body["body"]) == []

    def test_blank_query_values_are_kept(self):
        start, body = call(http_scope("GET", "/path/polymorphic", b"kind="))

        assert start["status"] == 200
        assert json.loads(body["body"])["className"] == "SubClass2"

    def test_body_is_read_in_chunks(self):
        payload = json.dumps({"name": "chunked"}).encode()

        start, body = call(http_scope("POST", "/path/create-thing"), payload)

        assert start["status"] == 200
        assert json.loads(body["body"])["name"] == "chunked"

    def test_no_content_has_no_length(self):
        start, body = call(http_scope("DELETE", "/path/thing/1"))

        assert start["status"] == 204
        assert b"content-length" not in dict(start["headers"])
        assert body["body"] == b""

    def test_unsupported_method(self):
        start, _ = call(http_scope("TRACE", "/path/things"))

        assert start["status"] == 405

    def test_non_http_scope(self):
        start, _ = call({"type": "websocket", "path": "/"})

        assert start["status"] == 404
