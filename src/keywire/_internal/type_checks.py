from __future__ import annotations

import functools
import inspect
import types
from typing import Any, TypeGuard


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_protocol_class(candidate: type[Any]) -> bool:
    """Return true when candidate is a ``typing.Protocol`` definition."""
    return bool(getattr(candidate, "_is_protocol", False))


def supports_isinstance(candidate: type[Any]) -> bool:
    """Return false for protocols that are not ``runtime_checkable``."""
    if not is_protocol_class(candidate):
        return True
    return bool(getattr(candidate, "_is_runtime_protocol", False))


def is_factory(candidate: object) -> bool:
    """Return true when candidate is a routine or partial that produces values.

    Classes and callable instances of arbitrary classes are not factories.

    Args:
        candidate: Value being classified at bind time.

    """
    if isinstance(candidate, type):
        return False
    return inspect.isroutine(candidate) or isinstance(candidate, functools.partial)


def is_user_defined(function: object) -> bool:
    """Return true when function is implemented in Python.

    Bound methods and partials are unwrapped first. Builtins and C extension
    callables are opaque: their defaults cannot be relied upon.

    Args:
        function: Callable being described.

    """
    while isinstance(function, functools.partial):
        function = function.func
    function = getattr(function, "__func__", function)
    return inspect.isfunction(function)


__all__ = [
    "is_factory",
    "is_protocol_class",
    "is_runtime_class",
    "is_user_defined",
    "supports_isinstance",
]
