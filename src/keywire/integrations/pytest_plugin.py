from __future__ import annotations

from collections.abc import Iterator

import pytest

from keywire.container import Container
from keywire.container_context import container_context


@pytest.fixture()
def keywire_container() -> Container:
    """Return a fresh container for each test.

    Override this fixture in a test suite to return a container with the
    application's bindings.

    """
    return Container()


@pytest.fixture()
def keywire_context(keywire_container: Container) -> Iterator[Container]:
    """Bind ``keywire_container`` to the global ``container_context`` for one test.

    The context is reset afterwards so bindings do not leak between tests.

    """
    container_context.reset()
    container_context.set_current(keywire_container)
    yield keywire_container
    container_context.reset()
