"""Tests for thread safety of Container."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from keywire.container import Container
from keywire.lock_mode import LockMode


class ServiceA:
    pass


class ServiceB:
    def __init__(self, a: ServiceA) -> None:
        self.a = a


class TestConcurrentResolution:
    def test_concurrent_singleton_resolution_same_instance(self, container: Container) -> None:
        """Concurrent singleton resolution returns same instance."""
        container.singleton(ServiceB)
        results: list[ServiceB] = []
        errors: list[Exception] = []

        def resolve_service() -> None:
            try:
                instance = container.resolve(ServiceB)
                results.append(instance)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=resolve_service) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(results) == 10
        assert all(r is results[0] for r in results)

    def test_concurrent_non_shared_resolution_different_instances(
        self,
        container: Container,
    ) -> None:
        """Concurrent resolution of non-shared bindings creates different instances."""
        container.bind(ServiceB)
        results: list[ServiceB] = []

        def resolve_service() -> None:
            results.append(container.resolve(ServiceB))

        threads = [threading.Thread(target=resolve_service) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 10
        assert len({id(r) for r in results}) == 10


class TestRaceConditions:
    def test_slow_singleton_factory_runs_once(self, container: Container) -> None:
        """A shared factory is invoked once even when threads race to resolve it."""
        calls: list[int] = []

        def slow_factory() -> object:
            calls.append(1)
            time.sleep(0.01)
            return object()

        container.singleton("slow", slow_factory)
        results: list[object] = []

        def resolve_slow() -> None:
            results.append(container.resolve("slow"))

        with ThreadPoolExecutor(max_workers=20) as executor:
            futures = [executor.submit(resolve_slow) for _ in range(20)]
            for f in as_completed(futures):
                f.result()

        assert calls == [1]
        assert len(results) == 20
        assert all(r is results[0] for r in results)

    def test_concurrent_binding_and_resolution(self) -> None:
        container = Container()
        errors: list[Exception] = []

        def bind_values(offset: int) -> None:
            try:
                for index in range(50):
                    container.bind_raw(f"value.{offset}.{index}", index)
                    assert container.resolve(f"value.{offset}.{index}") == index
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=bind_values, args=(offset,)) for offset in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(container.keys()) == 10 * 50 + 1


class TestStress:
    def test_many_concurrent_resolutions(self) -> None:
        """100 threads resolving an unbound graph concurrently."""
        container = Container()

        class StressService:
            def __init__(self, a: ServiceA, b: ServiceB) -> None:
                self.a = a
                self.b = b

        results: list[StressService] = []
        errors: list[Exception] = []

        def resolve_complex() -> None:
            try:
                results.append(container.resolve(StressService))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=resolve_complex) for _ in range(100)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(results) == 100
        for r in results:
            assert isinstance(r.a, ServiceA)
            assert isinstance(r.b, ServiceB)
            assert isinstance(r.b.a, ServiceA)


class TestLockModeNone:
    def test_unlocked_container_resolves(self, unlocked_container: Container) -> None:
        unlocked_container.singleton(ServiceB)

        assert unlocked_container.resolve(ServiceB) is unlocked_container.resolve(ServiceB)
        assert "lock_mode=NONE" in repr(unlocked_container)

    def test_default_lock_mode_is_thread(self, container: Container) -> None:
        assert f"lock_mode={LockMode.THREAD.name}" in repr(container)
