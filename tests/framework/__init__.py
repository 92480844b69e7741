"""
Test framework for service API testing using 4-layer architecture.
"""

from .dsl import ServiceApiDsl, HttpRequest, HttpResponse
from .drivers import DirectDriver, AsgiDriver

__all__ = [
    'ServiceApiDsl',
    'HttpRequest',
    'HttpResponse',
    'DirectDriver',
    'AsgiDriver',
]
