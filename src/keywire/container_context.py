from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias, TypeVar, cast, overload

from keywire.bindings import Identifier, Overrides
from keywire.container import Container
from keywire.exceptions import KeyWireContainerNotSetError

T = TypeVar("T")

_RegistrationMethod: TypeAlias = Literal[
    "bind",
    "bind_raw",
    "singleton",
    "unbind",
]


@dataclass(frozen=True, slots=True)
class _RegistrationOperation:
    """One recorded ``bind``-family call and its arguments."""

    method_name: _RegistrationMethod
    args: tuple[Any, ...]
    kwargs: dict[str, Any]

    def apply(self, container: Container) -> None:
        method = cast("Callable[..., Any]", getattr(container, self.method_name))
        method(*self.args, **self.kwargs)


class ContainerContext:
    """Global access point to one application container.

    Bindings may be declared at import time, before the container exists: they
    are kept in call order and applied to every container later passed to
    ``set_current``. Resolution and invocation need a current container.

    There is one current container per ``ContainerContext`` instance, shared by
    all threads. Tests that swap it should reset the context afterwards.
    """

    def __init__(self) -> None:
        self._container: Container | None = None
        self._operations: list[_RegistrationOperation] = []

    def set_current(self, container: Container) -> None:
        """Make ``container`` current and apply every recorded binding to it.

        Bindings recorded later are applied to the current container as soon
        as they are made.

        Args:
            container: Container that later calls are forwarded to.

        """
        self._container = container
        for operation in self._operations:
            operation.apply(container)

    def get_current(self) -> Container:
        """Return the current container.

        Raises:
            KeyWireContainerNotSetError: If no container has been bound yet.

        """
        if self._container is None:
            msg = (
                "No current container. Call set_current(container) during startup "
                "before resolving through the container context."
            )
            raise KeyWireContainerNotSetError(msg)
        return self._container

    def reset(self) -> None:
        """Unbind the current container and drop recorded registrations."""
        self._container = None
        self._operations.clear()

    def _record_operation(
        self,
        method_name: _RegistrationMethod,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        operation = _RegistrationOperation(method_name=method_name, args=args, kwargs=kwargs)
        self._operations.append(operation)
        if self._container is not None:
            operation.apply(self._container)

    def bind(
        self,
        key: Identifier,
        definition: Any = None,
        params: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> None:
        """Record and apply ``Container.bind`` on the current container.

        Args:
            key: Identifier or class to bind.
            definition: What the identifier resolves to.
            params: Preset parameters by name or position.
            shared: Cache the first resolved value.

        """
        self._record_operation("bind", key, definition, params, shared=shared)

    def bind_raw(self, key: Identifier, value: Any) -> None:
        """Record and apply ``Container.bind_raw`` on the current container.

        Args:
            key: Identifier or class to bind.
            value: Value to return verbatim.

        """
        self._record_operation("bind_raw", key, value)

    def singleton(
        self,
        key: Identifier,
        definition: Any = None,
        params: Overrides | None = None,
    ) -> None:
        """Record and apply ``Container.singleton`` on the current container.

        Args:
            key: Identifier or class to bind.
            definition: What the identifier resolves to.
            params: Preset parameters by name or position.

        """
        self._record_operation("singleton", key, definition, params)

    def unbind(self, key: Identifier) -> None:
        """Record and apply ``Container.unbind`` on the current container.

        Args:
            key: Identifier or class to forget.

        """
        self._record_operation("unbind", key)

    def has(self, key: Identifier) -> bool:
        return self.get_current().has(key)

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
        """Resolve through the current container.

        Args:
            key: Identifier or class to resolve.
            overrides: Arguments by parameter name or position.
            shared: Cache the result even when the binding is not shared.

        """
        return self.get_current().resolve(key, overrides, shared=shared)

    def call(
        self,
        target: Any,
        overrides: Overrides | None = None,
        *,
        shared: bool = False,
    ) -> Any:
        """Invoke a callable through the current container.

        Args:
            target: Callable or callable reference.
            overrides: Arguments by parameter name or position.
            shared: Cache the instance resolved as the method receiver.

        """
        return self.get_current().call(target, overrides, shared=shared)


container_context = ContainerContext()

__all__ = ["ContainerContext", "container_context"]
