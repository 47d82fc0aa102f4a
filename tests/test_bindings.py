"""Tests for BindingRegistry classification and bookkeeping."""

import functools

import pytest

from keywire.bindings import (
    BindingRegistry,
    ClassNameBinding,
    ClosureBinding,
    merge_parameters,
    normalize_overrides,
)
from keywire.exceptions import KeyWireInvalidArgumentError
from keywire.introspection import ReflectionTypeIntrospector


class Repository:
    pass


def make_repository() -> Repository:
    return Repository()


@pytest.fixture()
def registry() -> BindingRegistry:
    return BindingRegistry(ReflectionTypeIntrospector())


class TestNormalizeOverrides:
    def test_none_is_empty(self) -> None:
        assert normalize_overrides(None) == {}

    def test_list_and_tuple_are_positional(self) -> None:
        assert normalize_overrides(["a", "b"]) == {0: "a", 1: "b"}
        assert normalize_overrides(("a",)) == {0: "a"}

    def test_mapping_is_copied(self) -> None:
        overrides = {"name": 1, 0: 2}

        normalized = normalize_overrides(overrides)

        assert normalized == overrides
        assert normalized is not overrides

    def test_other_values_fail(self) -> None:
        with pytest.raises(KeyWireInvalidArgumentError):
            normalize_overrides(42)  # type: ignore[arg-type]


def test_merge_parameters_prefers_presets() -> None:
    merged = merge_parameters({"name": "preset"}, {"name": "call", 0: "positional"})

    assert merged == {"name": "preset", 0: "positional"}


class TestClassification:
    def test_none_binds_identifier_to_itself(self, registry: BindingRegistry) -> None:
        registry.bind(Repository)

        identifier = registry.identifier(Repository)
        registration = registry.find_registration(identifier)
        assert registration is not None
        assert registration.definition == ClassNameBinding(identifier)

    def test_string_and_class_definitions(self, registry: BindingRegistry) -> None:
        registry.bind("by_name", "collections.OrderedDict")
        registry.bind("by_class", Repository)

        by_name = registry.find_registration("by_name")
        by_class = registry.find_registration("by_class")
        assert by_name is not None
        assert by_name.definition == ClassNameBinding("collections.OrderedDict")
        assert by_class is not None
        assert by_class.definition == ClassNameBinding(f"{__name__}.Repository")

    def test_routines_and_partials_are_factories(self, registry: BindingRegistry) -> None:
        partial = functools.partial(make_repository)
        registry.bind("function", make_repository)
        registry.bind("lambda", lambda: 1)
        registry.bind("partial", partial)
        registry.bind("builtin", len)

        for identifier in ("function", "lambda", "partial", "builtin"):
            registration = registry.find_registration(identifier)
            assert registration is not None
            assert isinstance(registration.definition, ClosureBinding)

    def test_other_objects_are_bound_raw(self, registry: BindingRegistry) -> None:
        instance = Repository()
        registry.bind("instance", instance)
        registry.bind("number", 3)

        raw = registry.find_raw("instance")
        assert raw is not None
        assert raw.value is instance
        assert registry.find_registration("instance") is None
        assert registry.find_raw("number") is not None

    def test_descriptor_mapping(self, registry: BindingRegistry) -> None:
        registry.bind(
            "repo",
            {"class": Repository, "params": ["first"], "shared": True},
            {0: "ignored", "other": 1},
        )

        registration = registry.find_registration("repo")
        assert registration is not None
        assert registration.definition == ClassNameBinding(f"{__name__}.Repository")
        assert registration.params == {0: "first", "other": 1}
        assert registration.shared
        assert registry.is_shared("repo")

    def test_descriptor_shared_key_overrides_argument(self, registry: BindingRegistry) -> None:
        registry.bind("repo", {"class": Repository, "shared": False}, shared=True)

        assert not registry.is_shared("repo")

    def test_descriptor_with_invalid_class_fails(self, registry: BindingRegistry) -> None:
        with pytest.raises(KeyWireInvalidArgumentError, match="must name a class"):
            registry.bind("repo", {"class": 42})

    def test_non_class_identifier_fails(self, registry: BindingRegistry) -> None:
        with pytest.raises(KeyWireInvalidArgumentError):
            registry.bind(3.5, Repository)  # type: ignore[arg-type]


class TestBookkeeping:
    def test_raw_and_registration_are_exclusive(self, registry: BindingRegistry) -> None:
        registry.bind_raw("key", 1)
        registry.bind("key", Repository)

        assert registry.find_raw("key") is None
        assert registry.find_registration("key") is not None

        registry.bind_raw("key", 2)

        assert registry.find_registration("key") is None
        assert registry.find_raw("key") is not None

    def test_bind_keeps_cached_instance(self, registry: BindingRegistry) -> None:
        registry.bind("key", Repository, shared=True)
        registry.instances.store("key", "cached")

        registry.bind("key", make_repository)

        assert registry.cached_keys() == ["key"]

    def test_unbind_drops_everything(self, registry: BindingRegistry) -> None:
        registry.bind("key", Repository, {"a": 1}, shared=True)
        registry.instances.store("key", "cached")

        registry.unbind("key")

        assert registry.find_registration("key") is None
        assert registry.presets("key") == {}
        assert not registry.is_shared("key")
        assert registry.cached_keys() == []
        assert not registry.has("key")

    def test_unbind_unknown_identifier_is_a_no_op(self, registry: BindingRegistry) -> None:
        registry.unbind("never.bound")

        assert registry.keys() == []

    def test_keys_are_unique_and_ordered(self, registry: BindingRegistry) -> None:
        registry.bind_raw("a", 1)
        registry.bind("b", Repository, shared=True)
        registry.instances.store("b", "cached")
        registry.instances.store("c", "cached")

        assert registry.keys() == ["a", "b", "c"]

    def test_has_reports_cached_identifiers(self, registry: BindingRegistry) -> None:
        registry.instances.store("only.cached", None)

        assert registry.has("only.cached")
        assert registry.instances.lookup("only.cached") is None
        assert len(registry.instances) == 1
