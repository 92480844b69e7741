"""
Pluggable lookup of human-readable documentation.

A :class:`DocumentationProvider` answers four independent questions: what a
method does, what it returns, what a parameter means and what a model field
means. Each lookup is an optional function; an unset lookup documents
nothing. Providers are assembled with :class:`DocumentationProviderBuilder`.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .operations import ParameterBinding

MethodDocumentation = Callable[[Callable], Optional[str]]
ParameterDocumentation = Callable[["ParameterBinding"], Optional[str]]
ModelDocumentation = Callable[[Sequence[Any]], Optional[str]]

DOCUMENTATION_ATTRIBUTE = "__servicemachine_documentation__"


@dataclass(frozen=True)
class Documentation:
    """Documentation marker.

    Attach it to parameters and model fields with ``typing.Annotated``::

        def get_thing(self, id: Annotated[int, Documentation("The thing id")]) -> Thing:
            ...

        class Thing(BaseModel):
            name: Annotated[str, Documentation("Display name")]

    or to methods with :func:`documented`.
    """

    value: str = ""
    returns: str = ""


def documented(value: str = "", returns: str = ""):
    """Attach a :class:`Documentation` marker to a method."""

    def decorator(func: Callable):
        setattr(func, DOCUMENTATION_ATTRIBUTE, Documentation(value, returns))
        return func

    return decorator


def find_documentation(annotations: Iterable[Any]) -> Optional[Documentation]:
    """First :class:`Documentation` marker among some declared metadata."""
    for annotation in annotations:
        if isinstance(annotation, Documentation):
            return annotation
    return None


class DocumentationProvider:
    """The four documentation lookups used when describing the API."""

    def __init__(
        self,
        method: Optional[MethodDocumentation] = None,
        method_return: Optional[MethodDocumentation] = None,
        parameter: Optional[ParameterDocumentation] = None,
        model: Optional[ModelDocumentation] = None,
    ):
        self._method = method
        self._method_return = method_return
        self._parameter = parameter
        self._model = model

    def for_method(self, func: Callable) -> Optional[str]:
        return self._method(func) if self._method else None

    def for_method_return(self, func: Callable) -> Optional[str]:
        return self._method_return(func) if self._method_return else None

    def for_parameter(self, binding: "ParameterBinding") -> Optional[str]:
        return self._parameter(binding) if self._parameter else None

    def for_model(self, annotations: Sequence[Any]) -> Optional[str]:
        return self._model(annotations) if self._model else None


class DocumentationProviderBuilder:
    """Builder for :class:`DocumentationProvider`."""

    def __init__(self):
        self._method: Optional[MethodDocumentation] = None
        self._method_return: Optional[MethodDocumentation] = None
        self._parameter: Optional[ParameterDocumentation] = None
        self._model: Optional[ModelDocumentation] = None

    def with_method_documentation_provider(self, provider: MethodDocumentation) -> "DocumentationProviderBuilder":
        self._method = provider
        return self

    def with_method_return_documentation_provider(self, provider: MethodDocumentation) -> "DocumentationProviderBuilder":
        self._method_return = provider
        return self

    def with_parameter_documentation_provider(self, provider: ParameterDocumentation) -> "DocumentationProviderBuilder":
        self._parameter = provider
        return self

    def with_model_documentation_provider(self, provider: ModelDocumentation) -> "DocumentationProviderBuilder":
        self._model = provider
        return self

    def build(self) -> DocumentationProvider:
        return DocumentationProvider(
            method=self._method,
            method_return=self._method_return,
            parameter=self._parameter,
            model=self._model,
        )


def _method_marker(func: Callable) -> Optional[Documentation]:
    return getattr(func, DOCUMENTATION_ATTRIBUTE, None)


def _method_documentation(func: Callable) -> Optional[str]:
    marker = _method_marker(func)
    if marker and marker.value:
        return marker.value
    return inspect.getdoc(func) or None


def _method_return_documentation(func: Callable) -> Optional[str]:
    marker = _method_marker(func)
    return marker.returns if marker and marker.returns else None


def _parameter_documentation(binding: "ParameterBinding") -> Optional[str]:
    marker = find_documentation(binding.annotations)
    return marker.value if marker and marker.value else None


def _model_documentation(annotations: Sequence[Any]) -> Optional[str]:
    marker = find_documentation(annotations)
    return marker.value if marker and marker.value else None


def default_documentation_provider() -> DocumentationProvider:
    """Provider reading :class:`Documentation` markers, falling back to docstrings for methods."""
    return (
        DocumentationProviderBuilder()
        .with_method_documentation_provider(_method_documentation)
        .with_method_return_documentation_provider(_method_return_documentation)
        .with_parameter_documentation_provider(_parameter_documentation)
        .with_model_documentation_provider(_model_documentation)
        .build()
    )
