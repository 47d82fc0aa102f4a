from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from keywire._internal.type_checks import supports_isinstance
from keywire.exceptions import KeyWireInstantiateError, ParameterContext
from keywire.introspection import CallableDescription, ParameterDescriptor, TypeIntrospector

_MISSING: Any = object()


class IdentifierResolver(Protocol):
    """The part of the container the dependency resolver recurses into."""

    def has(self, key: str) -> bool:
        """Return true when ``key`` can be resolved.

        Args:
            key: Identifier to check.

        """

    def resolve(self, key: str) -> Any:
        """Resolve ``key`` without overrides.

        Args:
            key: Identifier to resolve.

        """


@dataclass(slots=True)
class ResolvedArguments:
    """Concrete arguments for one invocation, in declared parameter order."""

    args: list[Any] = field(default_factory=list)
    kwargs: dict[str, Any] = field(default_factory=dict)

    def append(self, descriptor: ParameterDescriptor, value: Any) -> None:
        if descriptor.keyword_only:
            self.kwargs[descriptor.name] = value
        else:
            self.args.append(value)

    def __len__(self) -> int:
        return len(self.args) + len(self.kwargs)


class DependencyResolver:
    """Produce the argument list for a constructor, method, or function.

    For every described parameter, in declared order:

    1. An override by name, else by position, is used as is. For class-typed
       parameters the value must be an instance of the declared class (``None``
       is always accepted).
    2. Untyped and scalar parameters take their declared default. Without a
       default, resolution fails for Python callables; for opaque callables it
       stops at the first optional parameter and omits the rest.
    3. Class-typed parameters are resolved through the container when it knows
       the class, fall back to ``None`` when the parameter is nullable, and
       fail otherwise.
    """

    def __init__(self, identifiers: IdentifierResolver, introspector: TypeIntrospector) -> None:
        self._identifiers = identifiers
        self._introspector = introspector

    def resolve_parameters(
        self,
        description: CallableDescription,
        overrides: Mapping[str | int, Any],
        *,
        identifier: str | None = None,
    ) -> ResolvedArguments:
        """Resolve every parameter of ``description``.

        Args:
            description: Callable whose parameters are resolved.
            overrides: Values by parameter name or position.
            identifier: Identifier reported in errors. Defaults to the
                callable's qualified name.

        Raises:
            KeyWireInstantiateError: If a parameter cannot be satisfied.

        """
        reported = identifier or description.qualname
        arguments = ResolvedArguments()

        for descriptor in description.parameters:
            value = self._find_override(descriptor, overrides)
            if value is not _MISSING:
                self._check_override_type(reported, description, descriptor, value)
                arguments.append(descriptor, value)
                continue

            if descriptor.declared_type is None:
                if descriptor.has_default:
                    arguments.append(descriptor, descriptor.default)
                    continue
                if description.user_defined:
                    raise KeyWireInstantiateError(
                        reported,
                        f"missing required parameter '{descriptor.name}'",
                        self._context(description, descriptor),
                    )
                if descriptor.optional:
                    break
                raise KeyWireInstantiateError(
                    reported,
                    f"missing required parameter '{descriptor.name}' of a builtin callable",
                    self._context(description, descriptor),
                )

            class_identifier = self._introspector.identifier_of(descriptor.declared_type)
            if self._identifiers.has(class_identifier):
                arguments.append(descriptor, self._identifiers.resolve(class_identifier))
            elif descriptor.nullable:
                arguments.append(descriptor, None)
            else:
                raise KeyWireInstantiateError(
                    reported,
                    f"cannot resolve parameter '{descriptor.name}' of type '{class_identifier}'",
                    self._context(description, descriptor),
                )

        return arguments

    def _find_override(
        self,
        descriptor: ParameterDescriptor,
        overrides: Mapping[str | int, Any],
    ) -> Any:
        if descriptor.name in overrides:
            return overrides[descriptor.name]
        return overrides.get(descriptor.position, _MISSING)

    def _check_override_type(
        self,
        reported: str,
        description: CallableDescription,
        descriptor: ParameterDescriptor,
        value: Any,
    ) -> None:
        declared_type = descriptor.declared_type
        if declared_type is None or value is None or not supports_isinstance(declared_type):
            return
        if isinstance(value, declared_type):
            return
        raise KeyWireInstantiateError(
            reported,
            f"override for parameter '{descriptor.name}' is not an instance of "
            f"'{declared_type.__qualname__}'",
            self._context(description, descriptor, supplied=value),
        )

    def _context(
        self,
        description: CallableDescription,
        descriptor: ParameterDescriptor,
        *,
        supplied: Any = _MISSING,
    ) -> ParameterContext:
        declared_type = descriptor.declared_type
        return ParameterContext(
            position=descriptor.position,
            name=descriptor.name,
            declared_type=(
                None if declared_type is None else self._introspector.identifier_of(declared_type)
            ),
            declaring=description.qualname,
            supplied_type=None if supplied is _MISSING else type(supplied).__qualname__,
        )
