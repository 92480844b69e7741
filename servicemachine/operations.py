"""
Operation candidates: building them from service classes, resolving a request
to exactly one of them, binding its arguments and invoking it.

Everything reflective happens once, in :class:`OperationBuilder`. Requests
only walk the prebuilt, immutable candidate table.
"""

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .decorators import declared_path, is_excluded
from .exceptions import (
    AmbiguousOperationError,
    AmbiguousOperationMatchError,
    BadRequestError,
    ConfigurationError,
    InvocationError,
    MultipleBodyParametersError,
    OperationNotFoundError,
    SerializationError,
)
from .models import HTTPMethod
from .naming import PathNamingConvention, normalize_path
from .reflection import (
    is_optional_type,
    is_query_type,
    is_scalar_type,
    resolved_hints,
    sequence_item_type,
    split_annotated,
)
from .registry import ServiceDescriptor, ServiceRegistry
from .serialization import Serializer
from .verbs import VerbClassifier

BoundArguments = Tuple[List[Any], Dict[str, Any]]


class ParameterSource(Enum):
    """Where the value of a method parameter comes from."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"


@dataclass(frozen=True)
class PathSegment:
    """One segment of a path template: a literal or a ``{name}`` placeholder."""

    value: str
    is_placeholder: bool = False

    @classmethod
    def parse(cls, segment: str) -> "PathSegment":
        if segment.startswith("{") and segment.endswith("}"):
            return cls(segment[1:-1], True)
        if "{" in segment or "}" in segment:
            raise ConfigurationError(f"Malformed path segment '{segment}'")
        return cls(segment)

    def matches(self, segment: str) -> bool:
        return self.is_placeholder or self.value == segment

    def __str__(self) -> str:
        return "{" + self.value + "}" if self.is_placeholder else self.value


@dataclass(frozen=True)
class ParameterBinding:
    """How one method parameter is filled from a request."""

    name: str
    source: ParameterSource
    annotation: Any
    required: bool
    default: Any = None
    annotations: Tuple[Any, ...] = ()
    keyword_only: bool = False
    function: Optional[Callable] = field(default=None, compare=False, repr=False)

    @property
    def is_collection(self) -> bool:
        return sequence_item_type(self.annotation) is not None


@dataclass(frozen=True, eq=False)
class OperationCandidate:
    """A service method reachable through one verb and one path template."""

    service: ServiceDescriptor
    method_name: str
    function: Callable
    verb: HTTPMethod
    path_template: Tuple[PathSegment, ...]
    bindings: Tuple[ParameterBinding, ...]
    return_annotation: Any = inspect.Signature.empty

    @property
    def path(self) -> str:
        return "/" + "/".join(str(segment) for segment in self.path_template)

    @property
    def operation_id(self) -> str:
        return f"{self.service.service_type.__name__}_{self.method_name}"

    @property
    def body_binding(self) -> Optional[ParameterBinding]:
        for binding in self.bindings:
            if binding.source is ParameterSource.BODY:
                return binding
        return None

    def bindings_from(self, source: ParameterSource) -> List[ParameterBinding]:
        return [binding for binding in self.bindings if binding.source is source]

    def required_query_parameters(self) -> List[str]:
        return [b.name for b in self.bindings_from(ParameterSource.QUERY) if b.required]

    def match(self, segments: Sequence[str]) -> Optional[Dict[str, str]]:
        """Path parameters if the concrete path segments fit this template."""
        if len(segments) != len(self.path_template):
            return None
        params: Dict[str, str] = {}
        for template_segment, segment in zip(self.path_template, segments):
            if not template_segment.matches(segment):
                return None
            if template_segment.is_placeholder:
                params[template_segment.value] = segment
        return params

    def overlaps(self, other: "OperationCandidate") -> bool:
        """Whether some concrete request path would match both candidates."""
        if self.verb is not other.verb or len(self.path_template) != len(other.path_template):
            return False
        return all(
            mine.is_placeholder or theirs.is_placeholder or mine.value == theirs.value
            for mine, theirs in zip(self.path_template, other.path_template)
        )


def split_path(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def public_methods(service_type: type) -> List[Tuple[str, Callable]]:
    """Public, non-excluded functions of a service class, sorted by name."""
    return [
        (name, func)
        for name, func in inspect.getmembers(service_type, inspect.isfunction)
        if not name.startswith("_") and not is_excluded(func)
    ]


class OperationBuilder:
    """Reflects over registered services to produce operation candidates."""

    def __init__(self, verb_classifier: VerbClassifier, path_naming: PathNamingConvention):
        self.verb_classifier = verb_classifier
        self.path_naming = path_naming

    def build(self, registry: ServiceRegistry) -> List[OperationCandidate]:
        """Candidates of every registered service, checked for ambiguity.

        Raises:
            ConfigurationError: if any method cannot be exposed or two operations collide
        """
        candidates: List[OperationCandidate] = []
        for descriptor in registry.descriptors():
            candidates.extend(self.build_service(descriptor))
        check_unambiguous(candidates)
        return candidates

    def build_service(self, descriptor: ServiceDescriptor) -> List[OperationCandidate]:
        return [
            self.build_operation(descriptor, name, func)
            for name, func in public_methods(descriptor.service_type)
        ]

    def build_operation(self, descriptor: ServiceDescriptor, name: str, func: Callable) -> OperationCandidate:
        verb = self.verb_classifier.classify(name)

        try:
            hints = resolved_hints(func)
        except (NameError, TypeError) as e:
            raise ConfigurationError(f"Cannot resolve type hints of {descriptor.service_type.__name__}.{name}: {e}") from e

        parameters = list(inspect.signature(func).parameters.values())
        if not isinstance(inspect.getattr_static(descriptor.service_type, name), staticmethod):
            parameters = parameters[1:]

        declared: List[Tuple[inspect.Parameter, Any, Tuple[Any, ...]]] = []
        for parameter in parameters:
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise ConfigurationError(
                    f"{descriptor.service_type.__name__}.{name} cannot be exposed: variadic parameter '{parameter.name}'"
                )
            annotation, metadata = split_annotated(hints.get(parameter.name, inspect.Parameter.empty))
            if annotation is inspect.Parameter.empty:
                annotation = str
            declared.append((parameter, annotation, metadata))

        template = declared_path(func)
        if template is None:
            path_parameters = [
                parameter.name for parameter, annotation, _ in declared
                if is_scalar_type(annotation) and self.path_naming.is_path_parameter(parameter.name)
            ]
            template = self.path_naming.template_for(name, verb, path_parameters)
        path_template = tuple(PathSegment.parse(s) for s in split_path(normalize_path(descriptor.path_prefix, template)))

        bindings = self._bind_parameters(descriptor, name, func, declared, path_template)

        return OperationCandidate(
            service=descriptor,
            method_name=name,
            function=func,
            verb=verb,
            path_template=path_template,
            bindings=tuple(bindings),
            return_annotation=hints.get("return", inspect.Signature.empty),
        )

    def _bind_parameters(
        self,
        descriptor: ServiceDescriptor,
        name: str,
        func: Callable,
        declared: List[Tuple[inspect.Parameter, Any, Tuple[Any, ...]]],
        path_template: Tuple[PathSegment, ...],
    ) -> List[ParameterBinding]:
        qualified = f"{descriptor.service_type.__name__}.{name}"
        by_name = {parameter.name: annotation for parameter, annotation, _ in declared}

        placeholders = [segment.value for segment in path_template if segment.is_placeholder]
        if len(set(placeholders)) != len(placeholders):
            raise ConfigurationError(f"{qualified}: path template repeats a placeholder")
        for placeholder in placeholders:
            if placeholder not in by_name:
                raise ConfigurationError(f"{qualified}: path placeholder '{placeholder}' names no parameter")
            if not is_scalar_type(by_name[placeholder]):
                raise ConfigurationError(f"{qualified}: path parameter '{placeholder}' must be a scalar")

        bindings: List[ParameterBinding] = []
        for parameter, annotation, metadata in declared:
            has_default = parameter.default is not inspect.Parameter.empty
            optional, _ = is_optional_type(annotation)
            if parameter.name in placeholders:
                source = ParameterSource.PATH
                required = True
            elif is_query_type(annotation):
                source = ParameterSource.QUERY
                required = not has_default and not optional
            else:
                source = ParameterSource.BODY
                required = not has_default and not optional
            bindings.append(
                ParameterBinding(
                    name=parameter.name,
                    source=source,
                    annotation=annotation,
                    required=required,
                    default=parameter.default if has_default else None,
                    annotations=metadata,
                    keyword_only=parameter.kind is inspect.Parameter.KEYWORD_ONLY,
                    function=func,
                )
            )

        body = [b.name for b in bindings if b.source is ParameterSource.BODY]
        if len(body) > 1:
            raise MultipleBodyParametersError(qualified, body)
        return bindings


def check_unambiguous(candidates: Sequence[OperationCandidate]) -> None:
    """Raise :class:`AmbiguousOperationError` if two candidates can match one request."""
    for index, first in enumerate(candidates):
        for second in candidates[index + 1:]:
            if first.overlaps(second):
                raise AmbiguousOperationError(first.verb.value, first.path, second.path)


class OperationResolver:
    """Resolves a request to exactly one operation candidate."""

    def __init__(self, candidates: Iterable[OperationCandidate]):
        self.candidates: Tuple[OperationCandidate, ...] = tuple(candidates)

    def resolve(
        self, verb: HTTPMethod, path: str, query_keys: Iterable[str] = ()
    ) -> Tuple[OperationCandidate, Dict[str, str]]:
        """Find the candidate for a request and the raw values of its path parameters.

        Several matches are narrowed to the candidates whose required query
        parameters are all present. Candidates built by :class:`ServiceApplication`
        never overlap (see :func:`check_unambiguous`), so the narrowing only
        applies to resolvers constructed by hand from arbitrary candidates.

        Raises:
            OperationNotFoundError: if no candidate matches
            AmbiguousOperationMatchError: if more than one candidate matches
        """
        segments = split_path(path)
        matches = []
        for candidate in self.candidates:
            if candidate.verb is not verb:
                continue
            params = candidate.match(segments)
            if params is not None:
                matches.append((candidate, params))

        if not matches:
            raise OperationNotFoundError(f"No operation for {verb.value} {path}")
        if len(matches) > 1:
            available = set(query_keys)
            matches = [
                (candidate, params) for candidate, params in matches
                if set(candidate.required_query_parameters()) <= available
            ] or matches
        if len(matches) > 1:
            names = ", ".join(candidate.operation_id for candidate, _ in matches)
            raise AmbiguousOperationMatchError(f"{verb.value} {path} matches more than one operation: {names}")
        return matches[0]


class ArgumentBinder:
    """Turns path, query and body values into method arguments."""

    def __init__(self, serializer: Serializer):
        self.serializer = serializer

    def bind(
        self,
        candidate: OperationCandidate,
        path_params: Mapping[str, str],
        query_params: Mapping[str, Sequence[str]],
        body: Optional[bytes],
    ) -> BoundArguments:
        """Arguments for invoking ``candidate``, in declaration order.

        Raises:
            BadRequestError: if a value is missing or cannot be converted
        """
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for binding in candidate.bindings:
            if binding.source is ParameterSource.PATH:
                value = self._convert(binding, self.serializer.coerce, path_params[binding.name])
            elif binding.source is ParameterSource.QUERY:
                value = self._bind_query(binding, query_params.get(binding.name))
            else:
                value = self._bind_body(binding, body)

            if binding.keyword_only:
                kwargs[binding.name] = value
            else:
                args.append(value)
        return args, kwargs

    def _bind_query(self, binding: ParameterBinding, values: Optional[Sequence[str]]) -> Any:
        if not values:
            if binding.required:
                raise BadRequestError(f"Missing required query parameter '{binding.name}'", parameter=binding.name)
            return binding.default
        if binding.is_collection:
            return self._convert(binding, self.serializer.coerce_all, values)
        return self._convert(binding, self.serializer.coerce, values[0])

    def _bind_body(self, binding: ParameterBinding, body: Optional[bytes]) -> Any:
        if not body:
            if binding.required:
                raise BadRequestError(f"Missing request body for parameter '{binding.name}'", parameter=binding.name)
            return binding.default
        return self._convert(binding, self.serializer.decode, body)

    def _convert(self, binding: ParameterBinding, conversion: Callable[[Any, Any], Any], raw: Any) -> Any:
        try:
            return conversion(raw, binding.annotation)
        except SerializationError as e:
            raise BadRequestError(
                f"Invalid value for parameter '{binding.name}': {e.message}",
                parameter=binding.name,
                details=Serializer.validation_details(e),
            ) from e


def invoke(candidate: OperationCandidate, arguments: BoundArguments) -> Any:
    """Call the candidate's method on a fresh service instance.

    Raises:
        InvocationError: wrapping whatever the factory or the method raised
    """
    args, kwargs = arguments
    try:
        instance = candidate.service.create_instance()
        return getattr(instance, candidate.method_name)(*args, **kwargs)
    except Exception as e:
        raise InvocationError(f"Operation {candidate.operation_id} failed: {e}", e) from e
