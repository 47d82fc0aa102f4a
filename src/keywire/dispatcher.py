from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from typing_extensions import assert_never

from keywire.dependencies import DependencyResolver, ResolvedArguments
from keywire.exceptions import KeyWireIntrospectionError, KeyWireInvalidArgumentError
from keywire.introspection import CallableDescription, TypeIntrospector
from keywire.targets import (
    BoundMethodTarget,
    CallTarget,
    ClassMethodTarget,
    FunctionTarget,
    NamedFunctionTarget,
    QualifiedMethodTarget,
    parse_call_target,
)

logger = logging.getLogger(__name__)

_NO_RECEIVER: Any = object()


class ReceiverResolver(Protocol):
    """The part of the container used to build receivers for instance methods."""

    def has(self, key: str) -> bool:
        """Return true when ``key`` can be resolved.

        Args:
            key: Identifier to check.

        """

    def resolve(self, key: str, overrides: Any = None, *, shared: bool = False) -> Any:
        """Resolve ``key``, caching the result when ``shared`` is true.

        Args:
            key: Identifier to resolve.
            overrides: Values by parameter name or position.
            shared: Cache the resolved value.

        """


class InvocationDispatcher:
    """Invoke any supported call target with container-resolved arguments.

    Receiver selection, in order: functions and closures are called directly,
    static and class methods are called on their class, instance methods use
    the explicit receiver when one was given, and otherwise an instance of the
    method's class is resolved from the container.
    """

    def __init__(
        self,
        introspector: TypeIntrospector,
        dependency_resolver: DependencyResolver,
        receivers: ReceiverResolver,
    ) -> None:
        self._introspector = introspector
        self._dependency_resolver = dependency_resolver
        self._receivers = receivers

    def call(
        self,
        raw_target: Any,
        overrides: Mapping[str | int, Any],
        *,
        shared: bool = False,
    ) -> Any:
        """Resolve the arguments of ``raw_target`` and invoke it.

        Args:
            raw_target: Any shape accepted by ``parse_call_target``.
            overrides: Values by parameter name or position.
            shared: Cache the receiver resolved for instance methods.

        Raises:
            KeyWireInvalidArgumentError: If the target is malformed, cannot be
                introspected, or no receiver can be determined.
            KeyWireInstantiateError: If an argument cannot be resolved.

        """
        target = parse_call_target(raw_target, self._introspector.identifier_of)
        receiver, class_name, description = self._describe(target)
        arguments = self._dependency_resolver.resolve_parameters(description, overrides)
        return self._invoke(
            target,
            description,
            arguments,
            receiver=receiver,
            class_name=class_name,
            shared=shared,
        )

    def _describe(self, target: CallTarget) -> tuple[Any, str | None, CallableDescription]:
        try:
            if isinstance(target, FunctionTarget):
                return _NO_RECEIVER, None, self._introspector.describe_callable(target.function)
            if isinstance(target, NamedFunctionTarget):
                return _NO_RECEIVER, None, self._introspector.describe_function(target.name)
            if isinstance(target, BoundMethodTarget):
                class_name = self._introspector.identifier_of(type(target.receiver))
                description = self._introspector.describe_method(class_name, target.member)
                return target.receiver, class_name, description
            if isinstance(target, ClassMethodTarget):
                description = self._introspector.describe_method(target.class_name, target.member)
                return _NO_RECEIVER, target.class_name, description
            if isinstance(target, QualifiedMethodTarget):
                class_name, member = target.split()
                description = self._introspector.describe_method(class_name, member)
                return _NO_RECEIVER, class_name, description
            assert_never(target)
        except KeyWireIntrospectionError as error:
            msg = f"Unable to introspect call target {target!r}: {error}"
            raise KeyWireInvalidArgumentError(msg, target=target) from error

    def _invoke(  # noqa: PLR0913
        self,
        target: CallTarget,
        description: CallableDescription,
        arguments: ResolvedArguments,
        *,
        receiver: Any,
        class_name: str | None,
        shared: bool,
    ) -> Any:
        member = description.member or ""
        if not description.needs_receiver:
            if description.function is not None:
                logger.debug("Invoking function '%s'", description.qualname)
                return description.function(*arguments.args, **arguments.kwargs)
            logger.debug("Invoking '%s' without a receiver", description.qualname)
            return getattr(description.owner, member)(*arguments.args, **arguments.kwargs)

        if receiver is not _NO_RECEIVER:
            logger.debug("Invoking '%s' on the supplied receiver", description.qualname)
            return getattr(receiver, member)(*arguments.args, **arguments.kwargs)

        if class_name is not None and self._receivers.has(class_name):
            logger.debug("Invoking '%s' on a resolved '%s'", description.qualname, class_name)
            instance = self._receivers.resolve(class_name, shared=shared)
            return getattr(instance, member)(*arguments.args, **arguments.kwargs)

        msg = f"Unable to invoke {target!r}: no receiver for '{description.qualname}'."
        raise KeyWireInvalidArgumentError(msg, target=target)
