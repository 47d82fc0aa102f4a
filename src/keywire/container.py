from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from contextlib import AbstractContextManager, nullcontext
from typing import Any, TypeVar, overload

from keywire._internal.integrations.pydantic_settings import (
    build_settings,
    is_pydantic_settings_subclass,
)
from keywire.bindings import (
    BindingRegistry,
    ClassNameBinding,
    ClosureBinding,
    Identifier,
    Overrides,
    ParameterMap,
    merge_parameters,
    normalize_overrides,
)
from keywire.dependencies import DependencyResolver
from keywire.dispatcher import InvocationDispatcher
from keywire.exceptions import KeyWireInstantiateError, KeyWireUnknownIdentifierError
from keywire.instance_cache import MISSING
from keywire.introspection import ReflectionTypeIntrospector, TypeIntrospector
from keywire.lock_mode import LockMode
from keywire.targets import FunctionTarget

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container:
    """Map identifiers to values, factories, or classes and build them on demand.

    Identifiers are strings; classes are accepted anywhere an identifier is
    and stand for ``"module.QualName"``. An identifier that is not bound but
    names an existing class resolves to a new instance of that class.

    Constructor, method, and function arguments are supplied automatically:
    overrides win, untyped and scalar parameters take their defaults, and
    class-typed parameters are resolved recursively through the container.
    Shared bindings cache their first resolved value.

    The container binds itself under its own identifier, so factories and
    constructors that declare a ``Container`` parameter receive it.

    Dependency cycles are not detected: resolving a cyclic graph recurses
    until Python raises ``RecursionError``.
    """

    def __init__(
        self,
        *,
        introspector: TypeIntrospector | None = None,
        lock_mode: LockMode = LockMode.THREAD,
        call_empty_constructors: bool = False,
    ) -> None:
        """Initialize an empty container.

        Args:
            introspector: Type introspector to use. Share one instance between
                containers to share its description caches. Defaults to a new
                ``ReflectionTypeIntrospector``.
            lock_mode: ``LockMode.THREAD`` serializes registry mutations and
                resolution so shared values are built once under concurrent
                access. ``LockMode.NONE`` skips locking.
            call_empty_constructors: When no constructor arguments are
                resolved, the instance is created without running
                ``__init__`` by default. Set to ``True`` to run zero-argument
                constructors instead.

        Examples:
            .. code-block:: python

                container = Container()
                container.bind("mailer", SmtpMailer, {"host": "localhost"})
                container.singleton(UserRepository)

                repository = container.resolve(UserRepository)

        """
        self._introspector: TypeIntrospector = introspector or ReflectionTypeIntrospector()
        self._registry = BindingRegistry(self._introspector)
        self._dependency_resolver = DependencyResolver(self, self._introspector)
        self._dispatcher = InvocationDispatcher(
            self._introspector,
            self._dependency_resolver,
            self,
        )
        self._lock: AbstractContextManager[Any] = (
            threading.RLock() if lock_mode is LockMode.THREAD else nullcontext()
        )
        self._lock_mode = lock_mode
        self._call_empty_constructors = call_empty_constructors

        self.bind_raw(Container, self)
        if type(self) is not Container:
            self.bind_raw(type(self), self)

    @property
    def introspector(self) -> TypeIntrospector:
        return self._introspector

    # region Registration Methods
    def bind_raw(self, key: Identifier, value: Any) -> None:
        """Bind a value that every resolution returns verbatim.

        Any previous binding, preset parameters, shared flag, and cached
        instance of the identifier are dropped.

        Args:
            key: Identifier or class to bind.
            value: Value to return, including ``None``, functions, and classes.

        """
        with self._lock:
            self._registry.bind_raw(key, value)

    def bind(
        self,
        key: Identifier,
        definition: Any = None,
        params: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> None:
        """Bind a class, class name, factory, or descriptor mapping.

        ``None`` binds the identifier to itself as a class name. A string or
        class is instantiated (or, when it names another known identifier,
        resolved through it). A function, lambda, bound method, or partial is
        called as a factory with container-resolved arguments. A mapping may
        carry ``class``, ``params``, and ``shared`` keys that override the
        other arguments. Any other object is bound raw.

        Args:
            key: Identifier or class to bind.
            definition: What the identifier resolves to.
            params: Preset parameters by name or position. They take
                precedence over parameters passed to ``resolve``.
            shared: Cache the first resolved value.

        Examples:
            .. code-block:: python

                container.bind(Mailer, SmtpMailer)
                container.bind("greeting", lambda name: f"Hello {name}")
                container.bind("reports", {"class": ReportService, "params": {"limit": 10}})

        """
        with self._lock:
            self._registry.bind(key, definition, params, shared=shared)

    def singleton(
        self,
        key: Identifier,
        definition: Any = None,
        params: Overrides | None = None,
    ) -> None:
        """Bind like ``bind`` with ``shared=True``.

        Args:
            key: Identifier or class to bind.
            definition: What the identifier resolves to.
            params: Preset parameters by name or position.

        """
        self.bind(key, definition, params, shared=True)

    def unbind(self, key: Identifier) -> None:
        """Forget everything about an identifier, including its cached instance.

        Args:
            key: Identifier or class to forget.

        """
        with self._lock:
            self._registry.unbind(key)
        logger.debug("Unbound '%s'", key)

    def bind_raw_many(self, values: Mapping[str, Any]) -> None:
        """Bind every item of ``values`` raw.

        Args:
            values: Values by identifier.

        """
        with self._lock:
            for key, value in values.items():
                self._registry.bind_raw(key, value)

    def bind_many(self, definitions: Mapping[str, Any], *, shared: bool = False) -> None:
        """Bind every item of ``definitions`` like ``bind``.

        Args:
            definitions: Definitions by identifier.
            shared: Shared flag applied to every binding without its own
                descriptor ``shared`` key.

        """
        with self._lock:
            for key, definition in definitions.items():
                self._registry.bind(key, definition, shared=shared)

    # endregion Registration Methods

    # region Lookup
    def has(self, key: Identifier) -> bool:
        """Return whether ``resolve`` can find the identifier.

        True for bound and cached identifiers and for names of existing
        classes. A true result does not promise that construction succeeds.

        Args:
            key: Identifier or class to check.

        """
        return self._registry.has(key)

    def keys(self) -> list[str]:
        """Return identifiers with a raw value, a binding, or a cached instance."""
        return self._registry.keys()

    def cached_keys(self) -> list[str]:
        """Return identifiers with a cached shared instance."""
        return self._registry.cached_keys()

    # endregion Lookup

    # region Resolution
    @overload
    def resolve(
        self,
        key: type[T],
        overrides: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> T: ...

    @overload
    def resolve(
        self,
        key: str,
        overrides: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> Any: ...

    def resolve(
        self,
        key: Identifier,
        overrides: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> Any:
        """Return the value for an identifier, building it when needed.

        Raw values are returned verbatim, then cached shared instances. Other
        identifiers are produced from their binding, or instantiated as a class
        when unbound.

        Args:
            key: Identifier or class to resolve.
            overrides: Arguments by parameter name or position, or a list of
                positional arguments. Preset parameters win on equal keys.
            shared: Cache the result even when the binding is not shared.

        Raises:
            KeyWireUnknownIdentifierError: If ``has`` reports the identifier as
                unknown.
            KeyWireInstantiateError: If the identifier cannot be constructed.

        """
        identifier = self._registry.identifier(key)
        with self._lock:
            if not self._registry.has(identifier):
                raise KeyWireUnknownIdentifierError(identifier)

            raw = self._registry.find_raw(identifier)
            if raw is not None:
                return raw.value

            cached = self._registry.instances.lookup(identifier)
            if cached is not MISSING:
                return cached

            params = normalize_overrides(overrides)
            instance = self._produce(identifier, params)
            if shared or self._registry.is_shared(identifier):
                self._registry.instances.store(identifier, instance)
                logger.debug("Cached shared instance of '%s'", identifier)
            return instance

    def call(
        self,
        target: Any,
        overrides: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> Any:
        """Invoke a callable with container-resolved arguments.

        Accepted targets are a function or other callable, an
        ``(instance, "method")`` pair, a ``(class or class name, "method")``
        pair, a ``"module.Class:method"`` string, and a ``"module.function"``
        string. Instance methods named through their class run on an instance
        resolved from the container.

        Args:
            target: Callable or callable reference.
            overrides: Arguments by parameter name or position, or a list of
                positional arguments.
            shared: Cache the instance resolved as the receiver of an instance
                method.

        Raises:
            KeyWireInvalidArgumentError: If the target is malformed, cannot be
                introspected, or has no receiver.
            KeyWireInstantiateError: If an argument cannot be resolved.

        """
        return self._dispatcher.call(target, normalize_overrides(overrides), shared=shared)

    def _produce(self, identifier: str, overrides: ParameterMap) -> Any:
        registration = self._registry.find_registration(identifier)
        definition = (
            registration.definition if registration is not None else ClassNameBinding(identifier)
        )
        params = merge_parameters(self._registry.presets(identifier), overrides)

        if isinstance(definition, ClosureBinding):
            logger.debug("Producing '%s' with its factory", identifier)
            return self._dispatcher.call(FunctionTarget(definition.factory), params)

        class_name = definition.class_name
        if class_name != identifier and self._registry.has(class_name):
            logger.debug("Resolving '%s' through alias '%s'", identifier, class_name)
            return self.resolve(class_name, params)
        return self._construct(class_name, params)

    def _construct(self, class_name: str, params: ParameterMap) -> Any:
        description = self._introspector.describe_class(class_name)
        if description is None:
            raise KeyWireInstantiateError(class_name, "no class with this name exists")
        if not description.instantiable:
            raise KeyWireInstantiateError(class_name, "the class is abstract or a protocol")

        cls = description.cls
        if is_pydantic_settings_subclass(cls):
            logger.debug("Constructing settings '%s'", class_name)
            return build_settings(cls, params)

        if description.constructor is None:
            logger.debug("Constructing '%s' without a constructor", class_name)
            return cls.__new__(cls)

        arguments = self._dependency_resolver.resolve_parameters(
            description.constructor,
            params,
            identifier=class_name,
        )
        # An empty argument list skips __init__ unless call_empty_constructors is set.
        if not arguments and not self._call_empty_constructors:
            logger.debug("Constructing '%s' without running __init__", class_name)
            return cls.__new__(cls)

        logger.debug("Constructing '%s' with %d arguments", class_name, len(arguments))
        return cls(*arguments.args, **arguments.kwargs)

    # endregion Resolution

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (str, type)) and self.has(key)

    def __getitem__(self, key: Identifier) -> Any:
        return self.resolve(key)

    def __setitem__(self, key: Identifier, definition: Any) -> None:
        self.bind(key, definition)

    def __delitem__(self, key: Identifier) -> None:
        self.unbind(key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(keys={len(self.keys())}, lock_mode={self._lock_mode.name})"
