"""
Main application class: exposes the registered services over HTTP.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from .configuration import ServiceConfiguration
from .error_models import ErrorResponse
from .exceptions import InvocationError, RequestError, SerializationError
from .models import Request, Response
from .openapi import ApiDescription, ApiDescriptionAssembler
from .operations import (
    ArgumentBinder,
    OperationBuilder,
    OperationCandidate,
    OperationResolver,
    invoke,
)

# Set up logger for this module
logger = logging.getLogger(__name__)


class ServiceApplication:
    """Dispatches requests to service methods and describes them as OpenAPI.

    Everything reflective happens in the constructor: operation candidates are
    built, checked for ambiguity and the API description is generated once, so
    configuration errors abort startup instead of surfacing on a request. The
    built state is read-only and shared by concurrent calls to :meth:`execute`.
    """

    def __init__(self, configuration: Optional[ServiceConfiguration] = None):
        self.configuration = configuration or ServiceConfiguration()
        self.verb_classifier = self.configuration.verb_classifier()

        builder = OperationBuilder(self.verb_classifier, self.configuration.path_naming)
        self.operations = tuple(builder.build(self.configuration.registry))
        self.configuration.registry.freeze()

        self.resolver = OperationResolver(self.operations)
        self.binder = ArgumentBinder(self.configuration.serializer)
        self.api_description = self.describe()

        logger.info(
            f"Exposing {len(self.operations)} operations from {len(self.configuration.registry)} services"
        )
        for candidate in self.operations:
            logger.debug(f"{candidate.verb.value} {candidate.path} -> {candidate.operation_id}")

    def describe(self) -> ApiDescription:
        """Generate a fresh API description from the built operations."""
        return ApiDescriptionAssembler(self.configuration, self.operations).assemble()

    def execute(self, request: Request) -> Response:
        """Resolve, bind and invoke the operation addressed by a request."""
        try:
            candidate, path_params = self.resolver.resolve(request.method, request.path, request.query_keys())
            arguments = self.binder.bind(candidate, path_params, request.query_params, request.body)
            result = invoke(candidate, arguments)
        except InvocationError as e:
            mapped = self._map_exception(e.original_exception)
            if mapped is not None:
                return mapped
            logger.error(f"Error invoking {request.method.value} {request.path}: {e.original_exception!r}")
            return self._error_response(e)
        except RequestError as e:
            return self._error_response(e)
        except Exception as e:
            logger.error(f"Unhandled exception processing {request.method.value} {request.path}: {e}")
            return self._internal_error()

        return self._result_response(candidate, result, request)

    def _result_response(self, candidate: OperationCandidate, result: Any, request: Request) -> Response:
        if isinstance(result, Response):
            return result
        if result is None:
            return Response(204)
        serializer = self.configuration.serializer
        try:
            body = serializer.encode(result)
        except SerializationError as e:
            logger.error(f"Cannot serialize result of {candidate.operation_id} for {request.path}: {e}")
            return self._internal_error()
        return Response(200, body, content_type=serializer.media_type)

    def _map_exception(self, exception: BaseException) -> Optional[Response]:
        mapper = self.configuration.exception_mapper
        if mapper is None or not isinstance(exception, Exception):
            return None
        try:
            return mapper(exception)
        except Exception as e:
            # If the mapper fails, log and fall back to the default response
            logger.error(f"Error in exception mapper: {e}")
            return None

    def _error_response(self, error: RequestError) -> Response:
        body = ErrorResponse.from_request_error(error).model_dump_json()
        return Response(error.status_code, body.encode("utf-8"), content_type="application/json")

    def _internal_error(self) -> Response:
        return Response(
            500,
            json.dumps({"error": "Internal server error"}).encode("utf-8"),
            content_type="application/json",
        )

    def generate_openapi(self) -> Dict[str, Any]:
        """Generate the OpenAPI 3.0 document as a dictionary."""
        return self.describe().to_openapi()

    def generate_openapi_json(self) -> str:
        """Generate the OpenAPI 3.0 document as JSON."""
        return json.dumps(self.generate_openapi(), indent=2)

    def save_openapi_json(self, filename: str = "openapi.json", docs_dir: str = "docs") -> str:
        """Generate and save the OpenAPI JSON specification to a file in the docs directory."""

        # Create docs directory if it doesn't exist
        if not os.path.exists(docs_dir):
            os.makedirs(docs_dir)

        file_path = os.path.join(docs_dir, filename)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self.generate_openapi_json())

        return file_path
