from __future__ import annotations

import builtins
import functools
import importlib
import inspect
import logging
import threading
import types
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from inspect import Parameter
from typing import Annotated, Any, Protocol, Union, get_args, get_origin, get_type_hints

from keywire._internal.type_checks import (
    is_protocol_class,
    is_runtime_class,
    is_user_defined,
)
from keywire._internal.value_types import ValueTypePolicy
from keywire.exceptions import KeyWireIntrospectionError

logger = logging.getLogger(__name__)

_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)
_NOT_FOUND: Any = object()


class CallableKind(Enum):
    """Classify how a described callable must be invoked."""

    FUNCTION = auto()
    """A free function, lambda, bound method, or partial. Invoked as is."""

    INSTANCE_METHOD = auto()
    """A method that needs a receiver instance."""

    STATIC_METHOD = auto()
    """A ``staticmethod``. Invoked without a receiver."""

    CLASS_METHOD = auto()
    """A ``classmethod``. Invoked bound to its owner class."""

    CONSTRUCTOR = auto()
    """A class ``__init__``. Invoked by instantiating the owner class."""


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """Describe one parameter of a constructor, method, or function."""

    name: str
    position: int
    keyword_only: bool = False
    declared_type: type[Any] | None = None
    """Declared class type; ``None`` for untyped and scalar parameters."""
    has_default: bool = False
    default: Any = None
    nullable: bool = True
    optional: bool = False
    """True when the callable declares a default, even one that cannot be read."""


@dataclass(frozen=True, slots=True)
class CallableDescription:
    """Describe the parameter list of a callable and how to invoke it."""

    qualname: str
    parameters: tuple[ParameterDescriptor, ...]
    user_defined: bool
    kind: CallableKind
    function: Callable[..., Any] | None = None
    owner: type[Any] | None = None
    member: str | None = None

    @property
    def needs_receiver(self) -> bool:
        return self.kind is CallableKind.INSTANCE_METHOD


@dataclass(frozen=True, slots=True)
class ClassDescription:
    """Describe a class: whether it can be instantiated and what its constructor takes."""

    cls: type[Any]
    identifier: str
    instantiable: bool
    constructor: CallableDescription | None


class TypeIntrospector(Protocol):
    """Capability that exposes classes and callables to the container.

    The dependency resolver and the invocation dispatcher depend only on this
    protocol. ``ReflectionTypeIntrospector`` implements it with ``inspect``.
    """

    def identifier_of(self, cls: type[Any]) -> str:
        """Return the identifier of a class and make it discoverable by that name.

        Args:
            cls: Class to name.

        """

    def register_class(self, cls: type[Any], identifier: str | None = None) -> str:
        """Make a class discoverable by name without importing it.

        Args:
            cls: Class to register.
            identifier: Name to register under. Defaults to ``identifier_of(cls)``.

        """

    def find_class(self, name: str) -> type[Any] | None:
        """Return the class named by ``name`` or ``None`` if it does not denote a class.

        Args:
            name: Class identifier.

        """

    def describe_class(self, name: str) -> ClassDescription | None:
        """Describe the class named by ``name``; ``None`` when it is not a known class.

        Args:
            name: Class identifier.

        """

    def describe_callable(self, target: Callable[..., Any]) -> CallableDescription:
        """Describe a callable object.

        Args:
            target: Function, lambda, bound method, partial, or other callable.

        """

    def describe_function(self, name: str) -> CallableDescription:
        """Describe a free function named by a dotted path or builtin name.

        Args:
            name: Function reference, for example ``"os.path.join"``.

        """

    def describe_method(self, class_name: str, member: str) -> CallableDescription:
        """Describe a method of the class named by ``class_name``.

        Args:
            class_name: Class identifier.
            member: Method name.

        """


class ReflectionTypeIntrospector:
    """Describe classes and callables with ``inspect`` and ``typing.get_type_hints``.

    Descriptions are memoized. Caches are append-only: a name that did not
    denote a class is remembered as such until a class is registered under it.
    Cache writes happen under a lock and the last write wins, since filling the
    same entry twice yields equal descriptions.

    Closures are cached by identity through weak references; callables that
    cannot be weakly referenced (builtins) are described on every call.
    """

    def __init__(self, value_type_policy: ValueTypePolicy | None = None) -> None:
        self._value_type_policy = value_type_policy or ValueTypePolicy()
        self._lock = threading.Lock()
        self._known_classes: dict[str, type[Any]] = {}
        self._class_cache: dict[str, ClassDescription | None] = {}
        self._method_cache: dict[tuple[str, str], CallableDescription] = {}
        self._function_cache: dict[str, CallableDescription] = {}
        self._callable_cache: weakref.WeakKeyDictionary[Any, CallableDescription] = (
            weakref.WeakKeyDictionary()
        )

    # region Class lookup
    def identifier_of(self, cls: type[Any]) -> str:
        if cls.__module__ == "builtins":
            identifier = cls.__qualname__
        else:
            identifier = f"{cls.__module__}.{cls.__qualname__}"
        if self._known_classes.get(identifier) is not cls:
            self.register_class(cls, identifier)
        return identifier

    def register_class(self, cls: type[Any], identifier: str | None = None) -> str:
        if not is_runtime_class(cls):
            msg = f"Only classes can be registered, got {cls!r}."
            raise KeyWireIntrospectionError(msg)
        if identifier is None:
            identifier = self.identifier_of(cls)
        with self._lock:
            self._known_classes[identifier] = cls
            cached = self._class_cache.get(identifier)
            if cached is None or cached.cls is not cls:
                self._class_cache.pop(identifier, None)
        return identifier

    def find_class(self, name: str) -> type[Any] | None:
        known = self._known_classes.get(name)
        if known is not None:
            return known
        candidate = self._lookup_name(name)
        if is_runtime_class(candidate):
            return candidate
        return None

    def describe_class(self, name: str) -> ClassDescription | None:
        if name in self._class_cache:
            return self._class_cache[name]

        cls = self.find_class(name)
        description = None if cls is None else self._describe_class(cls, name)
        with self._lock:
            self._class_cache[name] = description
        logger.debug("Described class '%s': %s", name, description)
        return description

    def _describe_class(self, cls: type[Any], identifier: str) -> ClassDescription:
        instantiable = not inspect.isabstract(cls) and not is_protocol_class(cls)
        return ClassDescription(
            cls=cls,
            identifier=identifier,
            instantiable=instantiable,
            constructor=self._describe_constructor(cls),
        )

    def _describe_constructor(self, cls: type[Any]) -> CallableDescription | None:
        init = cls.__init__
        if init is object.__init__:
            return None
        try:
            signature = inspect.signature(init)
        except (TypeError, ValueError):
            return None
        return self._build_description(
            init,
            signature=signature,
            qualname=f"{cls.__qualname__}.__init__",
            kind=CallableKind.CONSTRUCTOR,
            skip_first_parameter=True,
            owner=cls,
            member="__init__",
        )

    def _lookup_name(self, name: str) -> Any:
        """Resolve a builtin name or a dotted import path to an object."""
        if not name or not isinstance(name, str):
            return None
        parts = name.split(".")
        if len(parts) == 1:
            return getattr(builtins, name, None)

        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            try:
                target: Any = importlib.import_module(module_name)
            except (ImportError, ValueError):
                continue
            for attribute in parts[split:]:
                target = getattr(target, attribute, _NOT_FOUND)
                if target is _NOT_FOUND:
                    return None
            return target
        return None

    # endregion Class lookup

    # region Callable description
    def describe_callable(self, target: Callable[..., Any]) -> CallableDescription:
        try:
            cached = self._callable_cache.get(target)
        except TypeError:
            return self._describe_function_object(target)
        if cached is not None:
            return cached

        description = self._describe_function_object(target)
        try:
            with self._lock:
                self._callable_cache[target] = description
        except TypeError:
            pass
        return description

    def describe_function(self, name: str) -> CallableDescription:
        cached = self._function_cache.get(name)
        if cached is not None:
            return cached

        function = self._lookup_name(name)
        if function is None:
            msg = f"Function '{name}' does not exist."
            raise KeyWireIntrospectionError(msg)
        if not callable(function):
            msg = f"'{name}' is not callable."
            raise KeyWireIntrospectionError(msg)

        description = self._describe_function_object(function)
        with self._lock:
            self._function_cache[name] = description
        logger.debug("Described function '%s'", name)
        return description

    def describe_method(self, class_name: str, member: str) -> CallableDescription:
        key = (class_name, member)
        cached = self._method_cache.get(key)
        if cached is not None:
            return cached

        cls = self.find_class(class_name)
        if cls is None:
            msg = f"Class '{class_name}' does not exist."
            raise KeyWireIntrospectionError(msg)
        try:
            raw_member = inspect.getattr_static(cls, member)
        except AttributeError as error:
            msg = f"Method '{class_name}.{member}' does not exist."
            raise KeyWireIntrospectionError(msg) from error

        if isinstance(raw_member, staticmethod):
            kind = CallableKind.STATIC_METHOD
            skip_first_parameter = False
        elif isinstance(raw_member, classmethod):
            kind = CallableKind.CLASS_METHOD
            skip_first_parameter = False
        else:
            kind = CallableKind.INSTANCE_METHOD
            skip_first_parameter = True

        function = getattr(cls, member)
        if not callable(function):
            msg = f"'{class_name}.{member}' is not callable."
            raise KeyWireIntrospectionError(msg)
        signature = self._signature(function, f"{class_name}.{member}")
        description = self._build_description(
            function,
            signature=signature,
            qualname=f"{cls.__qualname__}.{member}",
            kind=kind,
            skip_first_parameter=skip_first_parameter,
            owner=cls,
            member=member,
        )
        with self._lock:
            self._method_cache[key] = description
        logger.debug("Described method '%s.%s' as %s", class_name, member, kind.name)
        return description

    def _describe_function_object(self, function: Callable[..., Any]) -> CallableDescription:
        qualname = getattr(function, "__qualname__", None) or repr(function)
        return self._build_description(
            function,
            signature=self._signature(function, qualname),
            qualname=qualname,
            kind=CallableKind.FUNCTION,
            skip_first_parameter=False,
        )

    def _signature(self, function: Callable[..., Any], qualname: str) -> inspect.Signature:
        try:
            return inspect.signature(function)
        except (TypeError, ValueError) as error:
            msg = f"Unable to read the signature of '{qualname}': {error}"
            raise KeyWireIntrospectionError(msg) from error

    def _build_description(  # noqa: PLR0913
        self,
        function: Callable[..., Any],
        *,
        signature: inspect.Signature,
        qualname: str,
        kind: CallableKind,
        skip_first_parameter: bool,
        owner: type[Any] | None = None,
        member: str | None = None,
    ) -> CallableDescription:
        # Calling a class runs its __init__; annotations on the class body are fields.
        inspected = function.__init__ if inspect.isclass(function) else function
        user_defined = is_user_defined(inspected)
        parameters = list(signature.parameters.values())
        if (
            skip_first_parameter
            and parameters
            and parameters[0].name in _IMPLICIT_FIRST_PARAMETER_NAMES
            and parameters[0].kind not in _VARIADIC_KINDS
        ):
            parameters = parameters[1:]

        hints = self._resolved_type_hints(inspected)
        if any(isinstance(parameter.annotation, str) for parameter in parameters):
            hints = self._complete_string_hints(inspected, parameters, hints)
        descriptors: list[ParameterDescriptor] = []
        for parameter in parameters:
            if parameter.kind in _VARIADIC_KINDS:
                continue
            descriptors.append(
                self._describe_parameter(
                    parameter,
                    position=len(descriptors),
                    hints=hints,
                    user_defined=user_defined,
                ),
            )

        return CallableDescription(
            qualname=qualname,
            parameters=tuple(descriptors),
            user_defined=user_defined,
            kind=kind,
            function=function if kind is CallableKind.FUNCTION else None,
            owner=owner,
            member=member,
        )

    def _describe_parameter(
        self,
        parameter: Parameter,
        *,
        position: int,
        hints: dict[str, Any],
        user_defined: bool,
    ) -> ParameterDescriptor:
        annotation = hints.get(parameter.name, parameter.annotation)
        declares_default = parameter.default is not Parameter.empty
        if annotation is Parameter.empty or isinstance(annotation, str):
            declared_type, admits_none = None, True
        else:
            declared_type, admits_none = self._unwrap_annotation(annotation)

        if declared_type is not None:
            if self._value_type_policy.is_class_type(declared_type):
                self.identifier_of(declared_type)
            else:
                declared_type = None

        return ParameterDescriptor(
            name=parameter.name,
            position=position,
            keyword_only=parameter.kind is Parameter.KEYWORD_ONLY,
            declared_type=declared_type,
            has_default=user_defined and declares_default,
            default=parameter.default if user_defined and declares_default else None,
            nullable=admits_none or (declares_default and parameter.default is None),
            optional=declares_default,
        )

    def _unwrap_annotation(self, annotation: Any) -> tuple[Any, bool]:
        """Strip ``Annotated`` and ``Optional`` wrappers from an annotation.

        Returns the single remaining type (or ``None`` when there is not exactly
        one) and whether the annotation admits ``None``.
        """
        if get_origin(annotation) is Annotated:
            annotation = get_args(annotation)[0]

        if annotation is None or annotation is type(None):
            return None, True

        if get_origin(annotation) in (Union, types.UnionType):
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            admits_none = len(members) != len(get_args(annotation))
            if len(members) == 1:
                inner, _ = self._unwrap_annotation(members[0])
                return inner, admits_none
            return None, admits_none

        return annotation, False

    def _resolved_type_hints(self, function: Callable[..., Any]) -> dict[str, Any]:
        try:
            return get_type_hints(function)
        except (AttributeError, NameError, TypeError) as error:
            logger.debug("Type hints of %r are resolved per parameter: %s", function, error)
            return {}

    def _complete_string_hints(
        self,
        function: Callable[..., Any],
        parameters: list[Parameter],
        hints: dict[str, Any],
    ) -> dict[str, Any]:
        """Evaluate string annotations that ``get_type_hints`` left unresolved.

        Each annotation is evaluated on its own against the callable's module
        globals, falling back to classes registered with this introspector by
        their short name. Annotations that still fail stay untyped.
        """
        namespace: dict[str, Any] | None = None
        completed = dict(hints)
        for parameter in parameters:
            annotation = parameter.annotation
            if parameter.name in completed or not isinstance(annotation, str):
                continue
            if namespace is None:
                namespace = self._annotation_namespace(function)
            try:
                completed[parameter.name] = eval(annotation, namespace)  # noqa: S307
            except (AttributeError, NameError, SyntaxError, TypeError) as error:
                logger.debug(
                    "Annotation '%s' of parameter '%s' is unresolvable: %s",
                    annotation,
                    parameter.name,
                    error,
                )
        return completed

    def _annotation_namespace(self, function: Callable[..., Any]) -> dict[str, Any]:
        target: Any = inspect.unwrap(function)
        while isinstance(target, functools.partial):
            target = inspect.unwrap(target.func)
        with self._lock:
            known = list(self._known_classes.values())
        namespace = {cls.__name__: cls for cls in known}
        namespace.update(getattr(target, "__globals__", {}))
        return namespace

    # endregion Callable description


__all__ = [
    "CallableDescription",
    "CallableKind",
    "ClassDescription",
    "ParameterDescriptor",
    "ReflectionTypeIntrospector",
    "TypeIntrospector",
]
