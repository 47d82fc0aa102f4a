from __future__ import annotations

from typing import Any

MISSING: Any = object()
"""Sentinel returned by ``InstanceCache.lookup`` for identifiers without a cached value."""


class InstanceCache:
    """Hold at most one resolved value per shared identifier.

    Cached values may be ``None``; use ``lookup`` with the ``MISSING`` sentinel
    to tell an absent entry from a cached ``None``.
    """

    def __init__(self) -> None:
        self._instances: dict[str, Any] = {}

    def lookup(self, identifier: str) -> Any:
        """Return the cached value for ``identifier`` or ``MISSING``.

        Args:
            identifier: Identifier whose cached value is requested.

        """
        return self._instances.get(identifier, MISSING)

    def store(self, identifier: str, instance: Any) -> None:
        """Cache ``instance`` for ``identifier``, replacing any previous value.

        Args:
            identifier: Identifier the value was resolved for.
            instance: Fully constructed value.

        """
        self._instances[identifier] = instance

    def discard(self, identifier: str) -> None:
        self._instances.pop(identifier, None)

    def keys(self) -> list[str]:
        return list(self._instances)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._instances

    def __len__(self) -> int:
        return len(self._instances)
