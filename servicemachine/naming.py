"""
Naming conventions shared by the dispatcher and the API description.

This covers the pluggable type-name and tag providers, the convention used
to turn a method name into a URL path segment, and path normalization.
"""

import re
from typing import Callable, List, Optional, Pattern, Union

from .models import HTTPMethod

TypeNameProvider = Callable[[type], Optional[str]]
TagProvider = Callable[[str], Optional[str]]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def no_type_suffix(cls: type) -> Optional[str]:
    """Default type-name provider: schema names are the plain class names."""
    return None


def first_segment_tag(path: str) -> Optional[str]:
    """Default tag provider: the first segment of the path.

    Examples:
        first_segment_tag("/users/{id}") -> "users"
        first_segment_tag("/") -> None
    """
    for segment in path.split("/"):
        if segment:
            return segment
    return None


def schema_base_name(cls: type) -> str:
    """Component-safe base name for a type.

    Generic pydantic models are named like ``Page[Item]``; characters that
    are not allowed in a component key are collapsed into underscores.
    """
    name = getattr(cls, "__name__", None) or str(cls)
    return _INVALID_NAME_CHARS.sub("_", name).strip("_")


def schema_name(cls: type, type_name_provider: TypeNameProvider) -> str:
    """``BaseName`` or ``BaseName_<suffix>`` when the provider returns a suffix."""
    base = schema_base_name(cls)
    suffix = type_name_provider(cls)
    if suffix:
        return f"{base}_{suffix}"
    return base


def split_words(name: str) -> List[str]:
    """Split a snake_case or camelCase identifier into lower case words.

    Examples:
        split_words("get_thing_details") -> ["get", "thing", "details"]
        split_words("getThingDetails") -> ["get", "thing", "details"]
    """
    words = _CAMEL_BOUNDARY.sub("_", name).split("_")
    return [word.lower() for word in words if word]


def normalize_path(prefix: str, path: str) -> str:
    """Normalize a path by combining prefix and path, handling double slashes.

    Args:
        prefix: The prefix path (e.g., "/", "/api", "/users")
        path: The method path (e.g., "", "list", "{id}")

    Returns:
        Normalized path without double or trailing slashes

    Examples:
        normalize_path("/", "/users") -> "/users"
        normalize_path("/api", "users") -> "/api/users"
        normalize_path("/api/", "/users/") -> "/api/users"
        normalize_path("/api", "") -> "/api"
    """
    segments = [s for s in prefix.split("/") if s] + [s for s in path.split("/") if s]
    return "/" + "/".join(segments)


class PathNamingConvention:
    """Derives the URL path segment of a service method.

    The method name is split into words; when the method was classified
    under one of the explicit verbs (anything but POST) the leading verb word
    is dropped. The remaining words are joined with ``separator``. Scalar
    parameters whose name fully matches ``path_parameter_pattern`` are then
    appended as ``{name}`` placeholders, in declaration order.

    With the defaults, ``get_thing(id)`` becomes ``thing/{id}`` and
    ``create_order(order)`` becomes ``create-order``.
    """

    def __init__(
        self,
        separator: str = "-",
        strip_verb_prefix: bool = True,
        path_parameter_pattern: Union[str, Pattern[str]] = r"id|.*_id|.*Id",
    ):
        self.separator = separator
        self.strip_verb_prefix = strip_verb_prefix
        if isinstance(path_parameter_pattern, str):
            path_parameter_pattern = re.compile(path_parameter_pattern)
        self.path_parameter_pattern = path_parameter_pattern

    def segment_for(self, method_name: str, verb: HTTPMethod) -> str:
        """The literal part of the method's path."""
        words = split_words(method_name)
        if self.strip_verb_prefix and verb is not HTTPMethod.POST and len(words) > 1:
            words = words[1:]
        return self.separator.join(words)

    def is_path_parameter(self, parameter_name: str) -> bool:
        """Whether a scalar parameter with this name is taken from the path."""
        return bool(self.path_parameter_pattern.fullmatch(parameter_name))

    def template_for(self, method_name: str, verb: HTTPMethod, path_parameters: List[str]) -> str:
        """Literal segment followed by one placeholder per path parameter."""
        parts = [self.segment_for(method_name, verb)]
        parts.extend("{" + name + "}" for name in path_parameters)
        return "/".join(part for part in parts if part)
