from __future__ import annotations

import importlib
from types import ModuleType
from typing import Any

import pytest

import keywire._internal.integrations.pydantic_settings as pydantic_settings_integration
from keywire.container import Container

pydantic_settings = pytest.importorskip("pydantic_settings")


class AppSettings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_prefix="KEYWIRE_TEST_")

    host: str = "localhost"
    port: int = 8000


class Server:
    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings


def test_load_base_settings_returns_none_for_missing_module(monkeypatch: Any) -> None:
    def _raise_import_error(_module_name: str) -> ModuleType:
        raise ImportError

    monkeypatch.setattr(importlib, "import_module", _raise_import_error)

    assert pydantic_settings_integration._load_base_settings("missing.module") is None


def test_load_base_settings_returns_none_when_base_settings_is_not_a_type(
    monkeypatch: Any,
) -> None:
    module = ModuleType("test_module")
    module.BaseSettings = "not-a-type"  # type: ignore[attr-defined]

    def _import_module(_module_name: str) -> ModuleType:
        return module

    monkeypatch.setattr(importlib, "import_module", _import_module)

    assert pydantic_settings_integration._load_base_settings("fake.module") is None


def test_discover_settings_bases_skips_missing_modules_and_duplicates() -> None:
    bases = pydantic_settings_integration._discover_settings_bases(
        ("no_such_settings_module", "pydantic_settings", "pydantic_settings"),
    )

    assert bases == (pydantic_settings.BaseSettings,)


def test_build_settings_drops_positional_parameters() -> None:
    settings = pydantic_settings_integration.build_settings(AppSettings, {"port": 1, 0: "x"})

    assert settings.port == 1
    assert settings.host == "localhost"


def test_is_pydantic_settings_subclass() -> None:
    assert pydantic_settings_integration.is_pydantic_settings_subclass(AppSettings)
    assert not pydantic_settings_integration.is_pydantic_settings_subclass(Server)
    assert not pydantic_settings_integration.is_pydantic_settings_subclass("not-a-class")


def test_is_pydantic_settings_subclass_returns_false_on_issubclass_type_error(
    monkeypatch: Any,
) -> None:
    monkeypatch.setattr(pydantic_settings_integration, "SETTINGS_BASES", ("not-a-class",))

    assert pydantic_settings_integration.is_pydantic_settings_subclass(Server) is False


def test_unbound_settings_are_built_per_resolution(container: Container) -> None:
    first = container.resolve(AppSettings)

    assert first.host == "localhost"
    assert container.resolve(AppSettings) is not first
    assert container.resolve(Server).settings is not first
    assert container.cached_keys() == []


def test_shared_settings_are_built_once(container: Container) -> None:
    container.singleton(AppSettings)

    first = container.resolve(AppSettings)

    assert container.resolve(AppSettings) is first
    assert container.resolve(Server).settings is first


def test_settings_read_the_environment(container: Container, monkeypatch: Any) -> None:
    monkeypatch.setenv("KEYWIRE_TEST_PORT", "9000")

    assert container.resolve(AppSettings).port == 9000


def test_bound_settings_use_preset_fields(container: Container) -> None:
    container.bind("settings.local", AppSettings, {"host": "127.0.0.1", 0: "ignored"})

    settings = container.resolve("settings.local")

    assert settings.host == "127.0.0.1"
    assert container.resolve("settings.local") is not settings
