from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class KeyWireError(Exception):
    """Represent a base class for all KeyWire-specific failures.

    Catch this type when you want to handle any KeyWire error path without
    matching each concrete exception class individually.
    """


@dataclass(frozen=True, slots=True)
class ParameterContext:
    """Describe the parameter that could not be satisfied during instantiation."""

    position: int
    """Zero-based position of the parameter among the described parameters."""
    name: str
    """Declared parameter name."""
    declared_type: str | None = None
    """Identifier of the declared class type, if any."""
    declaring: str = ""
    """Qualified name of the constructor, method, or function declaring the parameter."""
    supplied_type: str | None = None
    """Runtime type of a rejected override value, if an override caused the failure."""


class KeyWireUnknownIdentifierError(KeyWireError, LookupError):
    """Signal that an identifier has no binding and does not name a class.

    Raised only by ``Container.resolve`` when ``Container.has`` reports the
    identifier as unknown. Identifiers that are known but cannot be built raise
    ``KeyWireInstantiateError`` instead.
    """

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Identifier '{identifier}' is not defined.")


class KeyWireInstantiateError(KeyWireError):
    """Signal that a known identifier could not be constructed.

    Raised for non-instantiable classes, missing required scalar parameters,
    class-typed parameters that are neither resolvable nor nullable, and
    overrides whose type does not satisfy a declared class parameter.

    Typical fixes include binding an abstract type to a concrete class,
    declaring a default for scalar parameters, or passing the value as an
    override.
    """

    def __init__(
        self,
        identifier: str,
        reason: str,
        context: ParameterContext | None = None,
    ) -> None:
        self.identifier = identifier
        self.reason = reason
        self.context = context
        msg = f"Identifier '{identifier}' is unable to instantiate: {reason}."
        if context is not None:
            msg = f"{msg} Context: {context}"
        super().__init__(msg)


class KeyWireInvalidArgumentError(KeyWireError, ValueError):
    """Signal a malformed call target or an invocation that cannot proceed.

    Raised by ``Container.call`` for unsupported target shapes, targets that
    cannot be introspected, and instance methods for which no receiver can be
    determined. Also raised for malformed binding descriptors.
    """

    def __init__(self, message: str, target: Any = None) -> None:
        self.target = target
        super().__init__(message)


class KeyWireIntrospectionError(KeyWireError):
    """Signal that a class or callable could not be introspected.

    The invocation dispatcher wraps this error as
    ``KeyWireInvalidArgumentError`` before it reaches callers of ``call``.
    """


class KeyWireContainerNotSetError(KeyWireError):
    """Signal use of ``container_context`` before a container is bound.

    Typical fix is calling ``container_context.set_current(container)`` during
    application startup before resolution calls.
    """
