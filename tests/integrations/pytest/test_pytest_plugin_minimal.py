from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Annotated, Protocol

import pytest

from dikernel import Injected, Kernel, KernelBuilder, Named

pytest_plugins = ["dikernel.integrations.pytest_plugin"]


class _Mailer:
    pass


class _FakeMailer(_Mailer):
    pass


class _Handler:
    pass


class _Missing(Protocol):
    def send(self) -> None: ...


@pytest.fixture()
def dikernel_kernel() -> Iterator[Kernel]:
    kernel = (
        KernelBuilder()
        .add_type(_Mailer, _FakeMailer)
        .add_constant(str, "primary", name="primary")
        .add_constant(_Handler, _Handler())
        .add_constant(_Handler, _Handler())
        .build()
    )
    yield kernel
    kernel.close()


@pytest.fixture()
def value() -> int:
    return 42


def test_injected_parameters_are_resolved_from_dikernel_kernel(
    value: int,
    mailer: Injected[_Mailer],
) -> None:
    assert value == 42
    assert isinstance(mailer, _FakeMailer)


def test_injected_parameters_mix_with_builtin_fixtures(
    tmp_path: Path,
    mailer: Injected[_Mailer],
) -> None:
    assert tmp_path.is_dir()
    assert isinstance(mailer, _FakeMailer)


def test_named_injected_parameter(label: Injected[Annotated[str, Named("primary")]]) -> None:
    assert label == "primary"


def test_collection_injected_parameter(handlers: Injected[list[_Handler]]) -> None:
    assert len(handlers) == 2


def test_optional_injected_parameter_is_none_when_unresolved(missing: Injected[_Missing | None]) -> None:
    assert missing is None


def test_public_dikernel_kernel_fixture_is_available(dikernel_kernel: Kernel) -> None:
    assert isinstance(dikernel_kernel, Kernel)
    assert not dikernel_kernel.is_closed
