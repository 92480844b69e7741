"""Tests for documentation markers and providers."""

from typing import Annotated

from servicemachine import (
    Documentation,
    DocumentationProvider,
    DocumentationProviderBuilder,
    default_documentation_provider,
    documented,
)
from servicemachine.documentation import find_documentation
from servicemachine.operations import ParameterBinding, ParameterSource


@documented("Marked method", returns="Marked result")
def marked():
    """Docstring that is not used."""


def docstring_only():
    """
    First line.

    More details.
    """


def undocumented():
    pass


class TestDefaultProvider:
    """Markers win over docstrings."""

    def setup_method(self):
        self.provider = default_documentation_provider()

    def test_marker(self):
        assert self.provider.for_method(marked) == "Marked method"
        assert self.provider.for_method_return(marked) == "Marked result"

    def test_docstring(self):
        assert self.provider.for_method(docstring_only) == "First line.\n\nMore details."
        assert self.provider.for_method_return(docstring_only) is None

    def test_nothing(self):
        assert self.provider.for_method(undocumented) is None

    def test_parameter(self):
        binding = ParameterBinding(
            name="id",
            source=ParameterSource.PATH,
            annotation=int,
            required=True,
            annotations=("unrelated", Documentation("The id")),
        )

        assert self.provider.for_parameter(binding) == "The id"

    def test_model_field(self):
        assert self.provider.for_model([Documentation("Field docs")]) == "Field docs"
        assert self.provider.for_model([Documentation()]) is None


class TestBuilder:

    def test_unset_lookups_document_nothing(self):
        provider = DocumentationProviderBuilder().build()

        assert provider.for_method(marked) is None
        assert provider.for_method_return(marked) is None
        assert provider.for_model([Documentation("x")]) is None

    def test_each_lookup_is_independent(self):
        provider = (
            DocumentationProviderBuilder()
            .with_method_return_documentation_provider(lambda func: "returns")
            .with_model_documentation_provider(lambda annotations: f"{len(annotations)} annotations")
            .build()
        )

        assert provider.for_method(marked) is None
        assert provider.for_method_return(marked) == "returns"
        assert provider.for_model([1, 2]) == "2 annotations"

    def test_empty_provider(self):
        assert DocumentationProvider().for_method(marked) is None


class TestFindDocumentation:

    def test_first_marker_wins(self):
        first, second = Documentation("a"), Documentation("b")

        assert find_documentation([object(), first, second]) is first

    def test_annotated_metadata(self):
        hint = Annotated[str, Documentation("Name")]

        assert find_documentation(hint.__metadata__) == Documentation("Name")

    def test_no_marker(self):
        assert find_documentation([]) is None
