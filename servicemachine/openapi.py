"""
API description assembly and OpenAPI 3.0 rendering.

The assembler walks the same operation candidates the dispatcher resolves
against, so every documented path, verb and parameter is one the dispatcher
accepts. Schemas come from a fresh :class:`ModelResolver` on every pass.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .configuration import ServiceConfiguration
from .error_models import ErrorResponse
from .models import Response
from .operations import OperationCandidate, ParameterBinding, ParameterSource
from .schema import ModelResolver, SchemaKind, TypeSchemaNode

OPENAPI_VERSION = "3.0.3"


@dataclass(frozen=True)
class ParameterDescription:
    name: str
    location: str
    required: bool
    schema: TypeSchemaNode
    documentation: Optional[str] = None
    is_collection: bool = False


@dataclass(frozen=True)
class OperationDescription:
    path: str
    verb: str
    tag: Optional[str]
    operation_id: str
    parameters: Tuple[ParameterDescription, ...]
    request_body: Optional[TypeSchemaNode]
    request_body_required: bool
    response: Optional[TypeSchemaNode]
    no_content: bool
    summary: str
    description: Optional[str]
    return_description: Optional[str]


@dataclass(frozen=True)
class ApiDescription:
    """Operations and schemas of the exposed services."""

    title: str
    version: str
    description: str
    vendor: Optional[str]
    host_url: Optional[str]
    operations: Tuple[OperationDescription, ...]
    schemas: Mapping[str, TypeSchemaNode]
    tags: Tuple[str, ...]
    error_schema: TypeSchemaNode

    def to_openapi(self) -> Dict[str, Any]:
        return render_openapi(self)


def _summary(candidate: OperationCandidate, documentation: Optional[str]) -> str:
    if documentation:
        return documentation.strip().splitlines()[0]
    return candidate.method_name.replace("_", " ").title()


def _returns_nothing(annotation: Any) -> bool:
    return annotation is None or annotation is type(None)


class ApiDescriptionAssembler:
    """Builds an :class:`ApiDescription` from operation candidates and the configured providers."""

    def __init__(self, configuration: ServiceConfiguration, candidates: Sequence[OperationCandidate]):
        self.configuration = configuration
        self.candidates = tuple(candidates)

    def assemble(self) -> ApiDescription:
        """Describe every candidate; raises configuration errors found while resolving schemas."""
        config = self.configuration
        resolver = ModelResolver(
            serializer=config.serializer,
            type_name_provider=config.type_name_provider,
            documentation_provider=config.documentation_provider,
        )

        operations = tuple(self._describe(candidate, resolver) for candidate in self.candidates)
        error_schema = resolver.resolve(ErrorResponse)
        tags = tuple(sorted({op.tag for op in operations if op.tag}))
        schemas = {name: resolver.schemas[name] for name in sorted(resolver.schemas)}

        return ApiDescription(
            title=config.title,
            version=config.version,
            description=config.description,
            vendor=config.vendor,
            host_url=config.host_url,
            operations=operations,
            schemas=schemas,
            tags=tags,
            error_schema=error_schema,
        )

    def _describe(self, candidate: OperationCandidate, resolver: ModelResolver) -> OperationDescription:
        docs = self.configuration.documentation_provider
        method_doc = docs.for_method(candidate.function)

        parameters = tuple(
            self._describe_parameter(binding, resolver)
            for binding in candidate.bindings
            if binding.source is not ParameterSource.BODY
        )

        body = candidate.body_binding
        returns = candidate.return_annotation
        no_content = _returns_nothing(returns)
        response = None
        if not no_content and returns not in (inspect.Signature.empty, Response):
            response = resolver.resolve(returns)

        return OperationDescription(
            path=candidate.path,
            verb=candidate.verb.value,
            tag=self.configuration.tag_provider(candidate.path),
            operation_id=candidate.operation_id,
            parameters=parameters,
            request_body=resolver.resolve(body.annotation) if body else None,
            request_body_required=bool(body and body.required),
            response=response,
            no_content=no_content,
            summary=_summary(candidate, method_doc),
            description=method_doc,
            return_description=docs.for_method_return(candidate.function),
        )

    def _describe_parameter(self, binding: ParameterBinding, resolver: ModelResolver) -> ParameterDescription:
        return ParameterDescription(
            name=binding.name,
            location=binding.source.value,
            required=binding.required,
            schema=resolver.resolve(binding.annotation),
            documentation=self.configuration.documentation_provider.for_parameter(binding),
            is_collection=binding.is_collection,
        )


def render_schema(node: TypeSchemaNode) -> Dict[str, Any]:
    """Reference for component nodes, inline schema for the rest."""
    if node.is_component:
        return {"$ref": node.ref}

    if node.kind is SchemaKind.ARRAY and node.items is not None:
        return {"type": "array", "items": render_schema(node.items)}

    schema: Dict[str, Any] = {}
    if node.any_of:
        schema["anyOf"] = [render_schema(member) for member in node.any_of]
        return schema
    if node.json_type:
        schema["type"] = node.json_type
    if node.format:
        schema["format"] = node.format
    if node.additional_properties is not None:
        schema["additionalProperties"] = render_schema(node.additional_properties)
    return schema


def _decorate(schema: Dict[str, Any], description: Optional[str], nullable: bool) -> Dict[str, Any]:
    if not description and not nullable:
        return schema
    if "$ref" in schema:
        # Siblings of $ref are ignored in OpenAPI 3.0
        schema = {"allOf": [schema]}
    else:
        schema = dict(schema)
    if description:
        schema["description"] = description
    if nullable:
        schema["nullable"] = True
    return schema


def render_component(node: TypeSchemaNode) -> Dict[str, Any]:
    """The ``components.schemas`` entry of a named node."""
    if node.kind is SchemaKind.ENUM:
        schema: Dict[str, Any] = {}
        if node.json_type:
            schema["type"] = node.json_type
        schema["enum"] = list(node.enum_values)
        if node.description:
            schema["description"] = node.description
        return schema

    body: Dict[str, Any] = {"type": "object"}
    properties = {
        f.name: _decorate(render_schema(f.schema), f.documentation, f.nullable)
        for f in node.fields
    }
    if properties:
        body["properties"] = properties
    required = [f.name for f in node.fields if f.required]
    if required:
        body["required"] = required
    if node.discriminator is not None:
        body["discriminator"] = {
            "propertyName": node.discriminator.property_name,
            "mapping": dict(node.discriminator.mapping),
        }

    if node.parent is not None:
        schema = {"allOf": [{"$ref": node.parent.ref}, body]}
    else:
        schema = body
    if node.description:
        schema["description"] = node.description
    return schema


def _error_response(description: str, error_schema: TypeSchemaNode) -> Dict[str, Any]:
    return {
        "description": description,
        "content": {"application/json": {"schema": render_schema(error_schema)}},
    }


def render_operation(operation: OperationDescription, error_schema: TypeSchemaNode) -> Dict[str, Any]:
    rendered: Dict[str, Any] = {"operationId": operation.operation_id}
    if operation.tag:
        rendered["tags"] = [operation.tag]
    rendered["summary"] = operation.summary
    if operation.description:
        rendered["description"] = operation.description

    if operation.parameters:
        parameters = []
        for parameter in operation.parameters:
            param: Dict[str, Any] = {
                "name": parameter.name,
                "in": parameter.location,
                "required": parameter.required,
                "schema": render_schema(parameter.schema),
            }
            if parameter.documentation:
                param["description"] = parameter.documentation
            if parameter.is_collection:
                param["style"] = "form"
                param["explode"] = True
            parameters.append(param)
        rendered["parameters"] = parameters

    if operation.request_body is not None:
        rendered["requestBody"] = {
            "required": operation.request_body_required,
            "content": {"application/json": {"schema": render_schema(operation.request_body)}},
        }

    responses: Dict[str, Any] = {}
    if operation.no_content:
        responses["204"] = {"description": operation.return_description or "No Content"}
    elif operation.response is not None:
        responses["200"] = {
            "description": operation.return_description or "Successful response",
            "content": {"application/json": {"schema": render_schema(operation.response)}},
        }
    else:
        responses["200"] = {"description": operation.return_description or "Successful response"}
    if operation.parameters or operation.request_body is not None:
        responses["400"] = _error_response("Bad Request", error_schema)
    responses["500"] = _error_response("Operation failed", error_schema)
    rendered["responses"] = responses
    return rendered


def render_openapi(description: ApiDescription) -> Dict[str, Any]:
    """Render an :class:`ApiDescription` as an OpenAPI 3.0 document."""
    info: Dict[str, Any] = {
        "title": description.title,
        "version": description.version,
        "description": description.description,
    }
    if description.vendor:
        info["x-vendor"] = description.vendor

    document: Dict[str, Any] = {"openapi": OPENAPI_VERSION, "info": info}
    if description.host_url:
        document["servers"] = [{"url": description.host_url}]
    if description.tags:
        document["tags"] = [{"name": tag} for tag in description.tags]

    paths: Dict[str, Dict[str, Any]] = {}
    for operation in description.operations:
        paths.setdefault(operation.path, {})[operation.verb.lower()] = render_operation(
            operation, description.error_schema
        )
    document["paths"] = paths
    document["components"] = {
        "schemas": {name: render_component(node) for name, node in description.schemas.items()}
    }
    return document


def collect_references(document: Any) -> List[str]:
    """Every ``$ref`` and discriminator mapping target in a rendered document."""
    found: List[str] = []

    def walk(value: Any) -> None:
        if isinstance(value, dict):
            for key, item in value.items():
                if key == "$ref" and isinstance(item, str):
                    found.append(item)
                elif key == "mapping" and isinstance(item, dict):
                    found.extend(v for v in item.values() if isinstance(v, str))
                    walk(item)
                else:
                    walk(item)
        elif isinstance(value, list):
            for item in value:
                walk(item)

    walk(document)
    return found


def dangling_references(document: Mapping[str, Any]) -> List[str]:
    """References in a rendered document that point at no component."""
    schemas: Iterable[str] = document.get("components", {}).get("schemas", {}).keys()
    known = {"#/components/schemas/" + name for name in schemas}
    return sorted({ref for ref in collect_references(document) if ref not in known})
