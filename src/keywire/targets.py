from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from keywire._internal.type_checks import is_runtime_class
from keywire.exceptions import KeyWireInvalidArgumentError

METHOD_SEPARATOR = ":"
_PAIR_LENGTH = 2


@dataclass(frozen=True, slots=True)
class FunctionTarget:
    """A closure or any other callable object, invoked as is."""

    function: Callable[..., Any]


@dataclass(frozen=True, slots=True)
class BoundMethodTarget:
    """A method looked up on an existing receiver object."""

    receiver: Any
    member: str


@dataclass(frozen=True, slots=True)
class ClassMethodTarget:
    """A method of the class named by ``class_name``.

    Static and class methods are invoked without a receiver; instance methods
    are invoked on an instance resolved from the container.
    """

    class_name: str
    member: str


@dataclass(frozen=True, slots=True)
class QualifiedMethodTarget:
    """A ``"package.module.Class:method"`` reference."""

    reference: str

    def split(self) -> tuple[str, str]:
        class_name, _, member = self.reference.rpartition(METHOD_SEPARATOR)
        return class_name, member


@dataclass(frozen=True, slots=True)
class NamedFunctionTarget:
    """A free function named by a dotted path or a builtin name."""

    name: str


CallTarget: TypeAlias = (
    FunctionTarget
    | BoundMethodTarget
    | ClassMethodTarget
    | QualifiedMethodTarget
    | NamedFunctionTarget
)

_TARGET_TYPES = (
    FunctionTarget,
    BoundMethodTarget,
    ClassMethodTarget,
    QualifiedMethodTarget,
    NamedFunctionTarget,
)


def parse_call_target(raw: Any, identifier_of: Callable[[type[Any]], str]) -> CallTarget:
    """Normalize the accepted call target shapes into a ``CallTarget`` variant.

    Accepted shapes are a callable, an ``(object, "method")`` pair, a
    ``(class or class name, "method")`` pair, a ``"module.Class:method"``
    string, and a ``"module.function"`` string.

    Args:
        raw: Target as passed to ``Container.call``.
        identifier_of: Maps a class to its identifier.

    Raises:
        KeyWireInvalidArgumentError: If ``raw`` has none of the accepted shapes.

    """
    if isinstance(raw, _TARGET_TYPES):
        return raw

    if isinstance(raw, (tuple, list)):
        if len(raw) != _PAIR_LENGTH or not isinstance(raw[1], str):
            msg = (
                "Call target pairs must be (object, 'method') or (class, 'method'), "
                f"got {raw!r}."
            )
            raise KeyWireInvalidArgumentError(msg, target=raw)
        owner, member = raw
        if isinstance(owner, str):
            return ClassMethodTarget(class_name=owner, member=member)
        if is_runtime_class(owner):
            return ClassMethodTarget(class_name=identifier_of(owner), member=member)
        return BoundMethodTarget(receiver=owner, member=member)

    if isinstance(raw, str):
        if METHOD_SEPARATOR in raw:
            target = QualifiedMethodTarget(raw)
            class_name, member = target.split()
            if not class_name or not member:
                msg = f"Method reference '{raw}' must look like 'module.Class:method'."
                raise KeyWireInvalidArgumentError(msg, target=raw)
            return target
        return NamedFunctionTarget(raw)

    if callable(raw):
        return FunctionTarget(raw)

    msg = f"Unsupported call target {raw!r}."
    raise KeyWireInvalidArgumentError(msg, target=raw)
