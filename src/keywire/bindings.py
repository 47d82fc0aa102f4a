from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from keywire._internal.type_checks import is_factory, is_runtime_class
from keywire.exceptions import KeyWireInvalidArgumentError
from keywire.instance_cache import InstanceCache
from keywire.introspection import TypeIntrospector

logger = logging.getLogger(__name__)

Identifier: TypeAlias = str | type[Any]
"""An identifier string, or a class standing for its own identifier."""

Overrides: TypeAlias = Mapping[str | int, Any] | Sequence[Any]
"""Argument overrides by parameter name or position, or a positional list."""

ParameterMap: TypeAlias = dict[str | int, Any]

DESCRIPTOR_KEYS = frozenset({"class", "params", "shared"})


def normalize_overrides(overrides: Overrides | None) -> ParameterMap:
    """Return overrides as a mapping keyed by parameter name or position.

    Args:
        overrides: ``None``, a mapping keyed by name or position, or a list or
            tuple of positional values.

    """
    if overrides is None:
        return {}
    if isinstance(overrides, (list, tuple)):
        return dict(enumerate(overrides))
    if isinstance(overrides, Mapping):
        return dict(overrides)
    msg = f"Overrides must be a mapping, list, or tuple, got {type(overrides).__qualname__}."
    raise KeyWireInvalidArgumentError(msg, target=overrides)


def merge_parameters(presets: Mapping[str | int, Any], overrides: ParameterMap) -> ParameterMap:
    """Merge bind-time presets with call-time overrides; presets win on equal keys."""
    return {**overrides, **presets}


@dataclass(frozen=True, slots=True)
class RawBinding:
    """A final value returned verbatim, never constructed or cached separately."""

    value: Any


@dataclass(frozen=True, slots=True)
class ClassNameBinding:
    """A class identifier to instantiate, or another identifier to alias."""

    class_name: str


@dataclass(frozen=True, slots=True)
class ClosureBinding:
    """A factory invoked through the dependency resolver."""

    factory: Callable[..., Any]


Definition: TypeAlias = ClassNameBinding | ClosureBinding


@dataclass(frozen=True, slots=True)
class Registration:
    """A producing binding with its preset parameters and shared flag."""

    definition: Definition
    params: Mapping[str | int, Any] = field(default_factory=dict)
    shared: bool = False


class BindingRegistry:
    """Store bindings per identifier along with the shared instance cache.

    An identifier holds either a raw value or a registration, never both.
    Identifiers that are not bound but name an existing class are reported as
    known by ``has``: bare class names resolve implicitly.
    """

    def __init__(self, introspector: TypeIntrospector) -> None:
        self._introspector = introspector
        self._raw: dict[str, RawBinding] = {}
        self._registrations: dict[str, Registration] = {}
        self.instances = InstanceCache()

    def identifier(self, key: Identifier) -> str:
        """Normalize a class or identifier string to an identifier string.

        Args:
            key: Identifier string or class.

        """
        if isinstance(key, str):
            return key
        if is_runtime_class(key):
            return self._introspector.identifier_of(key)
        msg = f"Identifiers must be strings or classes, got {key!r}."
        raise KeyWireInvalidArgumentError(msg, target=key)

    def bind_raw(self, key: Identifier, value: Any) -> None:
        """Bind ``value`` verbatim, dropping every other trace of the identifier.

        Args:
            key: Identifier to bind.
            value: Value returned by every later resolution, including ``None``,
                callables, and classes.

        """
        identifier = self.identifier(key)
        self.unbind(identifier)
        self._raw[identifier] = RawBinding(value)
        logger.debug("Bound raw value for '%s'", identifier)

    def bind(
        self,
        key: Identifier,
        definition: Any = None,
        params: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> None:
        """Bind a class name, class, factory, or descriptor mapping to an identifier.

        Definitions are classified as follows: ``None`` binds the identifier to
        itself as a class name, a string is a class name or another identifier,
        a class is bound by its identifier, a function or partial is a factory,
        and a mapping is a descriptor with optional ``class``, ``params``, and
        ``shared`` keys overriding the other arguments. Any other object is
        bound raw.

        Rebinding keeps an already cached shared instance until ``unbind``.

        Args:
            key: Identifier to bind.
            definition: What the identifier resolves to.
            params: Preset parameters. They take precedence over parameters
                passed at resolution time.
            shared: Cache the first resolved value and return it afterwards.

        """
        identifier = self.identifier(key)
        presets = normalize_overrides(params)

        if isinstance(definition, Mapping):
            definition, descriptor_params, shared = self._unpack_descriptor(
                identifier,
                definition,
                shared=shared,
            )
            presets = {**presets, **descriptor_params}
        elif definition is None:
            definition = identifier

        if isinstance(definition, str) or is_runtime_class(definition):
            binding: Definition = ClassNameBinding(
                self.identifier(definition),
            )
        elif is_factory(definition):
            binding = ClosureBinding(definition)
        else:
            self.bind_raw(identifier, definition)
            return

        self._raw.pop(identifier, None)
        self._registrations[identifier] = Registration(
            definition=binding,
            params=presets,
            shared=shared,
        )
        logger.debug("Bound '%s' to %s (shared=%s)", identifier, binding, shared)

    def _unpack_descriptor(
        self,
        identifier: str,
        descriptor: Mapping[Any, Any],
        *,
        shared: bool,
    ) -> tuple[Any, ParameterMap, bool]:
        unknown_keys = set(descriptor) - DESCRIPTOR_KEYS
        if unknown_keys:
            msg = (
                f"Binding descriptor for '{identifier}' has unknown keys "
                f"{sorted(map(str, unknown_keys))}. Allowed keys are 'class', 'params', "
                "and 'shared'. Use bind_raw to bind a mapping as a value."
            )
            raise KeyWireInvalidArgumentError(msg, target=descriptor)

        class_name = descriptor.get("class", identifier)
        if not isinstance(class_name, str) and not is_runtime_class(class_name):
            msg = (
                f"Binding descriptor for '{identifier}' must name a class, "
                f"got {class_name!r}."
            )
            raise KeyWireInvalidArgumentError(msg, target=descriptor)

        return (
            class_name,
            normalize_overrides(descriptor.get("params")),
            bool(descriptor.get("shared", shared)),
        )

    def unbind(self, key: Identifier) -> None:
        """Remove the raw value, registration, presets, flag, and cached instance.

        Args:
            key: Identifier to forget.

        """
        identifier = self.identifier(key)
        self._raw.pop(identifier, None)
        self._registrations.pop(identifier, None)
        self.instances.discard(identifier)

    def has(self, key: Identifier) -> bool:
        """Return true when the identifier is bound, cached, or names a class.

        Args:
            key: Identifier to check.

        """
        identifier = self.identifier(key)
        if identifier in self._raw or identifier in self._registrations:
            return True
        if identifier in self.instances:
            return True
        return self._introspector.describe_class(identifier) is not None

    def find_raw(self, identifier: str) -> RawBinding | None:
        return self._raw.get(identifier)

    def find_registration(self, identifier: str) -> Registration | None:
        return self._registrations.get(identifier)

    def is_shared(self, identifier: str) -> bool:
        registration = self._registrations.get(identifier)
        return registration is not None and registration.shared

    def presets(self, identifier: str) -> Mapping[str | int, Any]:
        registration = self._registrations.get(identifier)
        return {} if registration is None else registration.params

    def keys(self) -> list[str]:
        """Return identifiers with a raw value, a registration, or a cached instance."""
        return list(dict.fromkeys([*self._raw, *self._registrations, *self.instances.keys()]))

    def cached_keys(self) -> list[str]:
        return self.instances.keys()
