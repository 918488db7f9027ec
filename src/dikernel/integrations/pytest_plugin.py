from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterator
from typing import Any, cast, get_type_hints

import pytest

from dikernel.kernel import Kernel, KernelBuilder
from dikernel.planning.targets import CollectionKind, Target, TargetKind, is_injected_target_annotation

_DIKERNEL_KERNEL_ATTR = "_dikernel_kernel"
_DIKERNEL_INJECTED_TARGETS_ATTR = "__dikernel_pytest_injected_targets__"


@pytest.fixture()
def dikernel_kernel() -> Iterator[Kernel]:
    """Create a per-test kernel used by the plugin.

    Tests that declare ``Injected[...]`` parameters resolve them from this
    kernel. Override the fixture to register bindings; the kernel is closed
    after the test, deactivating its cached instances.

    Yields:
        A kernel built from an empty ``KernelBuilder``.

    """
    kernel = KernelBuilder().build()
    yield kernel
    kernel.close()


@pytest.fixture(autouse=True)
def _dikernel_state(request: pytest.FixtureRequest, dikernel_kernel: Kernel) -> None:
    """Store the kernel on the test node for hook access."""
    node = cast("Any", request.node)
    setattr(node, _DIKERNEL_KERNEL_ATTR, dikernel_kernel)


def pytest_pycollect_makeitem(collector: Any, name: str, obj: object) -> Any | None:
    """Hide ``Injected[...]`` parameters from pytest fixture name matching.

    Pytest treats test function parameters as fixture names, so the public
    signature of a test with injected parameters drops them.

    Returns:
        ``None`` to continue default collection flow.

    """
    if not callable(obj) or not collector.istestfunction(obj, name):
        return None
    function = cast("Callable[..., Any]", obj)
    targets = injected_targets(function)
    if not targets:
        return None

    signature = inspect.signature(function)
    hidden = {target.name for target in targets}
    obj_as_any = cast("Any", obj)
    obj_as_any.__dict__[_DIKERNEL_INJECTED_TARGETS_ATTR] = targets
    obj_as_any.__signature__ = signature.replace(
        parameters=[parameter for parameter in signature.parameters.values() if parameter.name not in hidden],
    )
    return None


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Iterator[None]:
    """Resolve ``Injected[...]`` parameters from the test's kernel around the call."""
    original = cast("Callable[..., Any]", pyfuncitem.obj)
    targets = getattr(original, _DIKERNEL_INJECTED_TARGETS_ATTR, None)
    kernel = cast("Kernel | None", getattr(pyfuncitem, _DIKERNEL_KERNEL_ATTR, None))
    if not targets or kernel is None:
        yield
        return

    @functools.wraps(original)
    def call_with_injected(*args: Any, **kwargs: Any) -> Any:
        for target in targets:
            kwargs[target.name] = resolve_target(kernel, target)
        return original(*args, **kwargs)

    pyfuncitem.obj = call_with_injected
    try:
        yield
    finally:
        pyfuncitem.obj = original


def injected_targets(function: Callable[..., Any]) -> tuple[Target, ...]:
    """Return targets for the parameters of ``function`` annotated with ``Injected``."""
    try:
        hints = get_type_hints(function, include_extras=True)
    except (NameError, TypeError):
        return ()
    targets: list[Target] = []
    for parameter in inspect.signature(function).parameters.values():
        annotation = hints.get(parameter.name)
        if annotation is None or not is_injected_target_annotation(annotation):
            continue
        targets.append(
            Target.from_annotation(
                name=parameter.name,
                annotation=annotation,
                kind=TargetKind.METHOD_PARAMETER,
                owner=function,
            ),
        )
    return tuple(targets)


def resolve_target(kernel: Kernel, target: Target) -> Any:
    """Resolve one injected test parameter from ``kernel``."""
    if target.collection is not None:
        values = kernel.get_all(target.service, name=target.constraint_name)
        return tuple(values) if target.collection is CollectionKind.TUPLE else values
    if target.is_optional:
        return kernel.try_get(target.service, name=target.constraint_name)
    return kernel.get(target.service, name=target.constraint_name)
