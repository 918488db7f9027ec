"""Shared pytest fixtures for dikernel tests."""

from collections.abc import Iterator

import pytest

from dikernel.kernel import Kernel, KernelBuilder
from dikernel.settings import KernelSettings


@pytest.fixture()
def settings() -> KernelSettings:
    """Settings with every option at its default."""
    return KernelSettings()


@pytest.fixture()
def builder(settings: KernelSettings) -> KernelBuilder:
    """Empty builder using the ``settings`` fixture."""
    return KernelBuilder(settings=settings)


@pytest.fixture()
def strict_builder() -> KernelBuilder:
    """Builder with cyclic dependency detection enabled."""
    return KernelBuilder(settings=KernelSettings(detect_cyclic_dependencies=True))


@pytest.fixture()
def kernel() -> Iterator[Kernel]:
    """Kernel without explicit bindings, closed after the test."""
    kernel = KernelBuilder(settings=KernelSettings()).build()
    yield kernel
    kernel.close()
