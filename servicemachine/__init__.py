"""
Expose plain Python service objects as an HTTP API.

Methods of registered service classes become operations: the method name
selects the HTTP verb and the path, parameters are bound from the path, the
query string and the JSON body, and the same reflection produces an OpenAPI
description, including discriminators for polymorphic models.
"""

from .application import ServiceApplication
from .configuration import ServiceConfiguration
from .decorators import exclude, path
from .documentation import (
    Documentation,
    DocumentationProvider,
    DocumentationProviderBuilder,
    default_documentation_provider,
    documented,
)
from .error_models import ErrorResponse
from .exceptions import (
    AmbiguousOperationError,
    AmbiguousOperationMatchError,
    BadRequestError,
    ConfigurationError,
    DuplicateVerbPatternError,
    InvocationError,
    MultipleBodyParametersError,
    OperationNotFoundError,
    RequestError,
    SchemaNameCollisionError,
    SerializationError,
    ServiceMachineError,
)
from .models import HTTPMethod, Request, Response
from .naming import PathNamingConvention, first_segment_tag, no_type_suffix
from .registry import ServiceDescriptor, ServiceRegistry
from .serialization import Serializer
from .server import ASGIAdapter, create_asgi_app
from .verbs import VerbClassifier

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "ServiceApplication",
    "ServiceConfiguration",
    "ServiceRegistry",
    "ServiceDescriptor",
    "Serializer",
    "VerbClassifier",
    "PathNamingConvention",
    "first_segment_tag",
    "no_type_suffix",
    "Documentation",
    "DocumentationProvider",
    "DocumentationProviderBuilder",
    "default_documentation_provider",
    "documented",
    "path",
    "exclude",
    "Request",
    "Response",
    "HTTPMethod",
    "ErrorResponse",
    "ASGIAdapter",
    "create_asgi_app",
    "ServiceMachineError",
    "ConfigurationError",
    "DuplicateVerbPatternError",
    "MultipleBodyParametersError",
    "AmbiguousOperationError",
    "SchemaNameCollisionError",
    "SerializationError",
    "RequestError",
    "OperationNotFoundError",
    "AmbiguousOperationMatchError",
    "BadRequestError",
    "InvocationError",
]
