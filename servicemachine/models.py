"""
Core HTTP data models for the service dispatcher.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class HTTPMethod(Enum):
    """Enumeration of HTTP methods understood at the transport boundary."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass
class Request:
    """Represents an HTTP request.

    Query parameters are kept as lists so that repeated keys
    (``?tag=a&tag=b``) can be bound to collection parameters.
    """

    method: HTTPMethod
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    query_params: Dict[str, List[str]] = field(default_factory=dict)

    def query_keys(self) -> List[str]:
        """Names of the query parameters present on the request."""
        return list(self.query_params.keys())


@dataclass
class Response:
    """Represents an HTTP response."""

    status_code: int
    body: Optional[bytes] = None
    headers: Optional[Dict[str, str]] = None
    content_type: Optional[str] = None

    def __post_init__(self):
        if self.headers is None:
            self.headers = {}

        if self.content_type:
            self.headers["Content-Type"] = self.content_type

        # Do not include Content-Length for 204 responses
        if self.status_code != 204:
            self.headers["Content-Length"] = str(len(self.body) if self.body else 0)

    @property
    def text(self) -> str:
        """The body decoded as UTF-8, or an empty string."""
        return self.body.decode("utf-8") if self.body else ""
