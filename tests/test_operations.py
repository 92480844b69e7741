"""Tests for building, resolving, binding and invoking operations."""

from typing import Annotated, List, Optional

import pytest
from pydantic import BaseModel

from servicemachine import (
    AmbiguousOperationError,
    AmbiguousOperationMatchError,
    BadRequestError,
    ConfigurationError,
    Documentation,
    DuplicateVerbPatternError,
    HTTPMethod,
    InvocationError,
    MultipleBodyParametersError,
    OperationNotFoundError,
    PathNamingConvention,
    Serializer,
    ServiceRegistry,
    VerbClassifier,
    path,
)
from servicemachine.operations import (
    ArgumentBinder,
    OperationBuilder,
    OperationResolver,
    ParameterSource,
    invoke,
)
from tests.framework.services import Colour, SubClass1, ThingRequest, WebService


def build(*services, classifier=None, naming=None):
    registry = ServiceRegistry()
    for prefix, service in services:
        registry.register(prefix, service)
    builder = OperationBuilder(classifier or VerbClassifier(), naming or PathNamingConvention())
    return builder.build(registry)


def by_method(candidates):
    return {candidate.method_name: candidate for candidate in candidates}


class TestOperationBuilder:
    """Service methods become operation candidates."""

    def test_paths_and_verbs(self):
        candidates = by_method(build(("/path", WebService)))

        routes = {name: (c.verb, c.path) for name, c in candidates.items()}
        assert routes == {
            "get_thing": (HTTPMethod.GET, "/path/thing/{id}"),
            "get_things": (HTTPMethod.GET, "/path/things"),
            "put_thing": (HTTPMethod.PUT, "/path/thing/{id}"),
            "delete_thing": (HTTPMethod.DELETE, "/path/thing/{id}"),
            "create_thing": (HTTPMethod.POST, "/path/create-thing"),
            "get_thing_name": (HTTPMethod.GET, "/path/things/{id}/names/{index}"),
            "get_polymorphic": (HTTPMethod.GET, "/path/polymorphic"),
            "submit_polymorphic": (HTTPMethod.POST, "/path/submit-polymorphic"),
            "get_tree": (HTTPMethod.GET, "/path/tree"),
            "fail": (HTTPMethod.POST, "/path/fail"),
        }

    def test_excluded_and_private_methods_are_skipped(self):
        names = by_method(build(("/path", WebService)))

        assert "get_hidden" not in names
        assert "_helper" not in names

    def test_operation_id(self):
        candidate = by_method(build(("/path", WebService)))["get_thing"]

        assert candidate.operation_id == "WebService_get_thing"

    def test_parameter_sources(self):
        candidates = by_method(build(("/path", WebService)))

        put = candidates["put_thing"]
        assert [(b.name, b.source) for b in put.bindings] == [
            ("id", ParameterSource.PATH),
            ("request", ParameterSource.BODY),
        ]
        assert put.body_binding.annotation is ThingRequest

        things = candidates["get_things"]
        assert [(b.name, b.source, b.required) for b in things.bindings] == [
            ("colour", ParameterSource.QUERY, False),
            ("tag", ParameterSource.QUERY, False),
        ]
        assert things.bindings[1].is_collection

    def test_documentation_metadata_is_kept(self):
        candidate = by_method(build(("/path", WebService)))["get_thing"]

        assert candidate.bindings[0].annotation is int
        assert candidate.bindings[0].annotations == (Documentation("The thing id"),)

    def test_unannotated_parameters_are_strings(self):
        class Untyped:
            def get_value(self, value):
                return value

        candidate = build(("/untyped", Untyped))[0]

        assert candidate.bindings[0].annotation is str
        assert candidate.bindings[0].source is ParameterSource.QUERY

    def test_staticmethods_have_no_self(self):
        class Static:
            @staticmethod
            def get_value(id: int) -> int:
                return id

        candidate = build(("/static", Static))[0]

        assert candidate.path == "/static/value/{id}"
        assert invoke(candidate, ([3], {})) == 3

    def test_two_body_parameters_are_rejected(self):
        class TwoBodies:
            def merge(self, first: ThingRequest, second: ThingRequest) -> None:
                pass

        with pytest.raises(MultipleBodyParametersError) as exc_info:
            build(("/bodies", TwoBodies))

        assert exc_info.value.parameters == ("first", "second")

    def test_variadic_parameters_are_rejected(self):
        class Variadic:
            def get_values(self, *values: str) -> None:
                pass

        with pytest.raises(ConfigurationError, match="variadic"):
            build(("/variadic", Variadic))

    def test_unknown_placeholder_is_rejected(self):
        class BadPath:
            @path("{missing}")
            def get_value(self) -> str:
                return ""

        with pytest.raises(ConfigurationError, match="names no parameter"):
            build(("/bad", BadPath))

    def test_model_placeholder_is_rejected(self):
        class BadPath:
            @path("{request}")
            def get_value(self, request: ThingRequest) -> str:
                return ""

        with pytest.raises(ConfigurationError, match="must be a scalar"):
            build(("/bad", BadPath))

    def test_duplicate_verb_pattern_surfaces_at_build_time(self):
        class Service:
            def put_thing(self) -> None:
                pass

        with pytest.raises(DuplicateVerbPatternError):
            build(("/svc", Service), classifier=VerbClassifier(get=r".*_thing"))


class TestAmbiguity:
    """Two operations that could serve the same request abort the build."""

    def test_same_path_same_verb(self):
        class First:
            def get_thing(self, id: int) -> str:
                return "first"

            @path("thing/{key}")
            def get_by_key(self, key: str) -> str:
                return "second"

        with pytest.raises(AmbiguousOperationError) as exc_info:
            build(("/svc", First))

        assert exc_info.value.verb == "GET"

    def test_literal_and_placeholder_overlap(self):
        class Service:
            def get_thing(self, id: int) -> str:
                return ""

            @path("thing/latest")
            def get_latest(self) -> str:
                return ""

        with pytest.raises(AmbiguousOperationError):
            build(("/svc", Service))

    def test_overlap_across_services(self):
        class One:
            @path("two/thing")
            def get_thing(self) -> str:
                return ""

        class Two:
            def get_thing(self) -> str:
                return ""

        with pytest.raises(AmbiguousOperationError):
            build(("/one", One), ("/one/two", Two))

    def test_different_verbs_do_not_clash(self):
        candidates = build(("/path", WebService))

        assert len([c for c in candidates if c.path == "/path/thing/{id}"]) == 3


class TestOperationResolver:
    """Requests resolve to exactly one candidate."""

    def setup_method(self):
        self.resolver = OperationResolver(build(("/path", WebService)))

    def test_resolves_path_parameters(self):
        candidate, params = self.resolver.resolve(HTTPMethod.GET, "/path/thing/42")

        assert candidate.method_name == "get_thing"
        assert params == {"id": "42"}

    def test_verb_selects_candidate(self):
        candidate, _ = self.resolver.resolve(HTTPMethod.DELETE, "/path/thing/42")

        assert candidate.method_name == "delete_thing"

    def test_trailing_slash_is_ignored(self):
        candidate, _ = self.resolver.resolve(HTTPMethod.GET, "/path/things/")

        assert candidate.method_name == "get_things"

    def test_unknown_path(self):
        with pytest.raises(OperationNotFoundError):
            self.resolver.resolve(HTTPMethod.GET, "/path/unknown/1/2")

    def test_wrong_verb(self):
        with pytest.raises(OperationNotFoundError):
            self.resolver.resolve(HTTPMethod.PUT, "/path/things")

    def test_required_query_keys_narrow_matches(self):
        class A:
            @path("search")
            def get_by_name(self, name: str) -> str:
                return "name"

        class B:
            @path("search")
            def get_by_colour(self, colour: Colour) -> str:
                return "colour"

        # Built without the ambiguity check to exercise request time narrowing
        builder = OperationBuilder(VerbClassifier(), PathNamingConvention())
        registry = ServiceRegistry({"/a": A})
        candidates = builder.build_service(registry.get("/a"))
        candidates += builder.build_service(ServiceRegistry({"/a": B}).get("/a"))
        resolver = OperationResolver(candidates)

        candidate, _ = resolver.resolve(HTTPMethod.GET, "/a/search", ["colour"])
        assert candidate.method_name == "get_by_colour"

        with pytest.raises(AmbiguousOperationMatchError):
            resolver.resolve(HTTPMethod.GET, "/a/search", [])


class TestArgumentBinder:
    """Raw request values become method arguments."""

    def setup_method(self):
        self.candidates = by_method(build(("/path", WebService)))
        self.binder = ArgumentBinder(Serializer())

    def test_path_value_is_converted(self):
        args, kwargs = self.binder.bind(self.candidates["get_thing"], {"id": "7"}, {}, None)

        assert args == [7]
        assert kwargs == {}

    def test_invalid_path_value(self):
        with pytest.raises(BadRequestError) as exc_info:
            self.binder.bind(self.candidates["get_thing"], {"id": "seven"}, {}, None)

        assert exc_info.value.parameter == "id"
        assert exc_info.value.details

    def test_query_values(self):
        args, _ = self.binder.bind(
            self.candidates["get_things"], {}, {"colour": ["blue", "red"], "tag": ["a", "b"]}, None
        )

        assert args == [Colour.BLUE, ["a", "b"]]

    def test_missing_optional_query_values_use_defaults(self):
        args, _ = self.binder.bind(self.candidates["get_things"], {}, {}, None)

        assert args == [None, None]

    def test_missing_required_query_value(self):
        with pytest.raises(BadRequestError) as exc_info:
            self.binder.bind(self.candidates["get_polymorphic"], {}, {}, None)

        assert exc_info.value.parameter == "kind"

    def test_body_is_decoded(self):
        args, _ = self.binder.bind(
            self.candidates["put_thing"], {"id": "3"}, {}, b'{"name": "third", "colour": "blue"}'
        )

        assert args[0] == 3
        assert args[1] == ThingRequest(name="third", colour=Colour.BLUE)

    def test_polymorphic_body(self):
        args, _ = self.binder.bind(
            self.candidates["submit_polymorphic"], {}, {}, b'{"className": "SubClass1", "name": "x", "size": 2}'
        )

        assert args == [SubClass1(name="x", size=2)]

    def test_missing_body(self):
        with pytest.raises(BadRequestError) as exc_info:
            self.binder.bind(self.candidates["create_thing"], {}, {}, None)

        assert exc_info.value.parameter == "request"

    def test_malformed_body(self):
        with pytest.raises(BadRequestError) as exc_info:
            self.binder.bind(self.candidates["create_thing"], {}, {}, b"{not json")

        assert exc_info.value.parameter == "request"

    def test_keyword_only_parameters(self):
        class KeywordOnly:
            def get_value(self, *, limit: int = 10, label: Optional[str] = None) -> str:
                return f"{label}:{limit}"

        candidate = build(("/kw", KeywordOnly))[0]

        arguments = self.binder.bind(candidate, {}, {"limit": ["3"]}, None)

        assert arguments == ([], {"limit": 3, "label": None})
        assert invoke(candidate, arguments) == "None:3"


class TestInvoke:
    """Service methods are called on fresh instances."""

    def test_failures_are_wrapped(self):
        candidate = by_method(build(("/path", WebService)))["fail"]

        with pytest.raises(InvocationError) as exc_info:
            invoke(candidate, ([], {}))

        assert isinstance(exc_info.value.original_exception, RuntimeError)
        assert exc_info.value.status_code == 500

    def test_factory_failures_are_wrapped(self):
        class Broken:
            def __init__(self):
                raise ValueError("no instance")

            def get_value(self) -> str:
                return ""

        candidate = build(("/broken", Broken))[0]

        with pytest.raises(InvocationError) as exc_info:
            invoke(candidate, ([], {}))

        assert isinstance(exc_info.value.original_exception, ValueError)

    def test_each_call_gets_a_new_instance(self):
        seen = []

        class Counter:
            def get_identity(self) -> int:
                seen.append(self)
                return len(seen)

        candidate = build(("/counter", Counter))[0]

        invoke(candidate, ([], {}))
        invoke(candidate, ([], {}))

        assert seen[0] is not seen[1]


class TestDocumentationAnnotations:

    def test_annotated_body_parameter(self):
        class Documented:
            def create(self, request: Annotated[ThingRequest, Documentation("New thing")]) -> None:
                pass

        candidate = build(("/docs", Documented))[0]

        assert candidate.body_binding.annotation is ThingRequest
        assert candidate.body_binding.annotations == (Documentation("New thing"),)

    def test_list_of_models_is_a_body(self):
        class Bulk:
            def create_many(self, requests: List[ThingRequest]) -> None:
                pass

        candidate = build(("/bulk", Bulk))[0]

        assert candidate.body_binding.name == "requests"

    def test_pydantic_model_with_defaults_is_optional_body(self):
        class Options(BaseModel):
            verbose: bool = False

        class Service:
            def run(self, options: Optional[Options] = None) -> None:
                pass

        candidate = build(("/svc", Service))[0]

        assert candidate.body_binding.required is False
