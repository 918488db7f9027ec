from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, cast

from dikernel import Injected, Kernel, KernelBuilder
from dikernel.integrations.pytest_plugin import (
    injected_targets,
    pytest_pycollect_makeitem,
    pytest_pyfunc_call,
    resolve_target,
)
from dikernel.planning.targets import CollectionKind, TargetKind


class _Service:
    def __init__(self, value: str = "service") -> None:
        self.value = value


class _DummyCollector:
    def __init__(self, *, is_test_function: bool) -> None:
        self._is_test_function = is_test_function

    def istestfunction(self, obj: object, name: str) -> bool:
        _ = obj, name
        return self._is_test_function


class _DummyPyFuncItem:
    def __init__(self, *, obj: Callable[..., Any], kernel: Kernel | None) -> None:
        self.obj = obj
        if kernel is not None:
            self._dikernel_kernel = kernel


def _collect(function: Callable[..., Any]) -> None:
    pytest_pycollect_makeitem(
        collector=_DummyCollector(is_test_function=True),
        name=function.__name__,
        obj=function,
    )


def test_pycollect_makeitem_ignores_non_callable_objects() -> None:
    collector = _DummyCollector(is_test_function=True)

    result = pytest_pycollect_makeitem(collector=collector, name="test_value", obj=1)

    assert result is None


def test_pycollect_makeitem_ignores_non_test_callables() -> None:
    collector = _DummyCollector(is_test_function=False)

    def helper(value: int, service: Injected[_Service]) -> None:
        _ = value, service

    original_signature = inspect.signature(helper)
    result = pytest_pycollect_makeitem(collector=collector, name="helper", obj=helper)

    assert result is None
    assert inspect.signature(helper) == original_signature


def test_pycollect_makeitem_rewrites_signature_for_injected_parameters() -> None:
    def test_handler(value: int, service: Injected[_Service]) -> tuple[int, _Service]:
        return value, service

    assert tuple(inspect.signature(test_handler).parameters) == ("value", "service")
    _collect(test_handler)

    assert tuple(inspect.signature(test_handler).parameters) == ("value",)


def test_pyfunc_call_passes_through_when_no_injected_parameters() -> None:
    def test_handler(value: int) -> int:
        return value

    _collect(test_handler)
    item = _DummyPyFuncItem(obj=test_handler, kernel=KernelBuilder().build())
    hook = pytest_pyfunc_call(cast("Any", item))
    next(hook)

    assert item.obj is test_handler
    next(hook, None)
    assert item.obj is test_handler


def test_pyfunc_call_wraps_injected_callable_and_restores_original() -> None:
    dependency = _Service("kernel")
    kernel = KernelBuilder().add_constant(_Service, dependency).build()

    def test_handler(service: Injected[_Service]) -> _Service:
        return service

    _collect(test_handler)
    item = _DummyPyFuncItem(obj=test_handler, kernel=kernel)
    hook = pytest_pyfunc_call(cast("Any", item))
    next(hook)

    wrapped = cast("Callable[..., _Service]", item.obj)
    assert wrapped is not test_handler
    assert wrapped() is dependency

    next(hook, None)
    assert item.obj is test_handler


def test_pyfunc_call_passes_through_when_kernel_state_is_missing() -> None:
    def test_handler(service: Injected[_Service]) -> _Service:
        return service

    _collect(test_handler)
    item = _DummyPyFuncItem(obj=test_handler, kernel=None)
    hook = pytest_pyfunc_call(cast("Any", item))
    next(hook)

    assert item.obj is test_handler
    next(hook, None)
    assert item.obj is test_handler


def test_injected_targets_describe_parameters() -> None:
    def test_handler(
        value: int,
        service: Injected[_Service],
        services: Injected[tuple[_Service, ...]],
        maybe: Injected[_Service] | None,
    ) -> None:
        _ = value, service, services, maybe

    targets = injected_targets(test_handler)

    assert [target.name for target in targets] == ["service", "services", "maybe"]
    assert all(target.kind is TargetKind.METHOD_PARAMETER for target in targets)
    assert targets[1].collection is CollectionKind.TUPLE
    assert targets[2].is_optional


def test_injected_targets_ignore_unresolvable_hints() -> None:
    def test_handler(service: Unknown) -> None:  # type: ignore[name-defined]  # noqa: F821
        _ = service

    assert injected_targets(test_handler) == ()


def test_resolve_target_by_shape() -> None:
    first = _Service("first")
    second = _Service("second")
    kernel = KernelBuilder().add_constant(_Service, first).add_constant(_Service, second).build()

    def test_handler(
        services: Injected[tuple[_Service, ...]],
        listed: Injected[list[_Service]],
    ) -> None:
        _ = services, listed

    services, listed = injected_targets(test_handler)

    assert resolve_target(kernel, services) == (first, second)
    assert resolve_target(kernel, listed) == [first, second]
    kernel.close()
