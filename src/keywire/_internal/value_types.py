from __future__ import annotations

import datetime
import decimal
import pathlib
import uuid
from dataclasses import dataclass
from typing import Any

from keywire._internal.type_checks import is_runtime_class


@dataclass(frozen=True, slots=True)
class ValueTypePolicy:
    """Internal policy deciding which annotations count as declared class types.

    Scalar builtins and common value types are treated like untyped
    parameters: they are satisfied from overrides or defaults and never
    auto-wired through the container.
    """

    scalar_types: frozenset[type[Any]] = frozenset(
        {
            int,
            str,
            float,
            bool,
            bytes,
            bytearray,
            complex,
            list,
            dict,
            set,
            frozenset,
            tuple,
            type(None),
        },
    )
    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
    )

    def is_class_type(self, candidate: object) -> bool:
        """Return true when an annotation names a class the container can wire.

        Args:
            candidate: Unwrapped parameter annotation.

        """
        if not is_runtime_class(candidate):
            return False
        if candidate is Any or candidate is object:
            return False
        if candidate in self.scalar_types:
            return False
        return not issubclass(candidate, self.ignored_base_types)
