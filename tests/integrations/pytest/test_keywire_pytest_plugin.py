import pytest

from keywire import Container, container_context
from keywire.integrations.pytest_plugin import keywire_context  # noqa: F401


class _Service:
    pass


class _FakeService(_Service):
    pass


@pytest.fixture()
def keywire_container() -> Container:
    container = Container()
    container.singleton(_Service, _FakeService)
    return container


def test_container_fixture_can_be_overridden(keywire_container: Container) -> None:
    assert isinstance(keywire_container.resolve(_Service), _FakeService)


def test_context_fixture_binds_container_context(keywire_context: Container) -> None:
    assert container_context.get_current() is keywire_context
    assert isinstance(container_context.resolve(_Service), _FakeService)


def test_context_bindings_do_not_leak_between_tests(keywire_context: Container) -> None:
    container_context.bind_raw("leaked", True)

    assert keywire_context.resolve("leaked") is True


def test_context_is_reset_after_each_test(keywire_context: Container) -> None:
    assert not keywire_context.has("leaked")
