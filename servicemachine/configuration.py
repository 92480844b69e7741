"""
Configuration shared by the dispatcher and the API description.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from .documentation import DocumentationProvider, default_documentation_provider
from .models import Response
from .naming import PathNamingConvention, TagProvider, TypeNameProvider, first_segment_tag, no_type_suffix
from .registry import ServiceRegistry
from .serialization import Serializer
from .verbs import (
    DEFAULT_DELETE_PATTERN,
    DEFAULT_GET_PATTERN,
    DEFAULT_PUT_PATTERN,
    VerbClassifier,
    VerbPattern,
)

ExceptionMapper = Callable[[Exception], Optional[Response]]


@dataclass
class ServiceConfiguration:
    """Everything needed to expose a set of services.

    The same configuration object drives request dispatch and API description
    generation, so both reach the same conclusions about verbs, paths,
    parameter bindings and schema names.

    Attributes:
        registry: The services to expose
        serializer: Reads request bodies and parameters, writes responses
        documentation_provider: Descriptions for methods, returns, parameters and model fields
        tag_provider: Grouping tag for an operation path
        type_name_provider: Suffix appended to schema component names
        get_pattern: Method names exposed as GET
        put_pattern: Method names exposed as PUT
        delete_pattern: Method names exposed as DELETE; everything else is POST
        path_naming: How method names turn into path segments
        exception_mapper: Optional translation of exceptions raised by service methods into responses
        vendor: Published as the ``x-vendor`` extension of the API description
    """

    registry: ServiceRegistry = field(default_factory=ServiceRegistry)
    serializer: Serializer = field(default_factory=Serializer)
    documentation_provider: DocumentationProvider = field(default_factory=default_documentation_provider)
    tag_provider: TagProvider = first_segment_tag
    type_name_provider: TypeNameProvider = no_type_suffix
    get_pattern: VerbPattern = DEFAULT_GET_PATTERN
    put_pattern: VerbPattern = DEFAULT_PUT_PATTERN
    delete_pattern: VerbPattern = DEFAULT_DELETE_PATTERN
    path_naming: PathNamingConvention = field(default_factory=PathNamingConvention)
    exception_mapper: Optional[ExceptionMapper] = None
    vendor: Optional[str] = None
    title: str = "Service API"
    version: str = "1.0.0"
    description: str = "API generated by servicemachine"
    host_url: Optional[str] = None

    def verb_classifier(self) -> VerbClassifier:
        return VerbClassifier(get=self.get_pattern, put=self.put_pattern, delete=self.delete_pattern)
