"""Shared pytest fixtures for keywire tests."""

import pytest

from keywire.container import Container
from keywire.introspection import ReflectionTypeIntrospector
from keywire.lock_mode import LockMode


@pytest.fixture()
def container() -> Container:
    """Default container with thread locking."""
    return Container()


@pytest.fixture()
def unlocked_container() -> Container:
    """Container without locking."""
    return Container(lock_mode=LockMode.NONE)


@pytest.fixture()
def introspector() -> ReflectionTypeIntrospector:
    """Fresh introspector with empty caches."""
    return ReflectionTypeIntrospector()
