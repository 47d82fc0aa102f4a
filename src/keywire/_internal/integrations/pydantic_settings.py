from __future__ import annotations

import importlib
import logging
import warnings
from collections.abc import Mapping
from typing import Any

from keywire._internal.type_checks import is_runtime_class

logger = logging.getLogger(__name__)

_SETTINGS_MODULES = ("pydantic_settings", "pydantic.v1")
_PYDANTIC_V1_WARNING_PATTERN = (
    r"Core Pydantic V1 functionality isn't compatible with Python 3\.14 or greater\."
)


def _load_base_settings(module_name: str) -> type[Any] | None:
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message=_PYDANTIC_V1_WARNING_PATTERN,
            category=UserWarning,
        )
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
    base_settings = getattr(module, "BaseSettings", None)
    return base_settings if isinstance(base_settings, type) else None


def _discover_settings_bases(
    module_names: tuple[str, ...] = _SETTINGS_MODULES,
) -> tuple[type[Any], ...]:
    bases: dict[int, type[Any]] = {}
    for module_name in module_names:
        base_settings = _load_base_settings(module_name)
        if base_settings is not None:
            bases.setdefault(id(base_settings), base_settings)
    return tuple(bases.values())


SETTINGS_BASES: tuple[type[Any], ...] = _discover_settings_bases()


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether a class is a supported Pydantic settings model.

    Both ``pydantic_settings.BaseSettings`` and legacy
    ``pydantic.v1.BaseSettings`` are recognized when importable. Without
    Pydantic installed every candidate is rejected.

    Args:
        candidate: Object to test.

    """
    if not is_runtime_class(candidate):
        return False
    try:
        return any(issubclass(candidate, base) for base in SETTINGS_BASES)
    except TypeError:
        return False


def build_settings(cls: type[Any], params: Mapping[str | int, Any]) -> Any:
    """Instantiate a settings model so that it reads its environment.

    Settings fields are passed by name; their constructor takes ``**values``,
    so positional parameters have nothing to bind to and are dropped.

    Args:
        cls: Settings class to instantiate.
        params: Merged preset and call-time parameters.

    """
    values = {name: value for name, value in params.items() if isinstance(name, str)}
    if len(values) != len(params):
        logger.debug("Dropping positional parameters for settings '%s'", cls.__qualname__)
    return cls(**values)


__all__ = [
    "SETTINGS_BASES",
    "build_settings",
    "is_pydantic_settings_subclass",
]
