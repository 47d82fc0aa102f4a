from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for registry mutations and cached resolution.

    Resolution of a shared identifier reads the instance cache, builds the
    value, and stores it. With ``THREAD`` the whole sequence runs under a
    re-entrant lock so concurrent first access builds a shared value once.
    """

    THREAD = "thread"
    """Guard registry mutations and resolution with ``threading.RLock``."""

    NONE = "none"
    """Disable locking. Use for containers owned by a single thread."""
