from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dikernel.lock_mode import LockMode


class KernelSettings(BaseSettings):
    """Configure a kernel's resolution behavior.

    Values are read from ``DIKERNEL_*`` environment variables unless passed
    explicitly. Settings are frozen once created and shared by every context
    the kernel builds.

    Examples:
        .. code-block:: python

            settings = KernelSettings(detect_cyclic_dependencies=True)
            kernel = KernelBuilder(settings=settings).build()

    """

    model_config = SettingsConfigDict(env_prefix="DIKERNEL_", frozen=True)

    allow_null_injection: bool = False
    """Accept ``None`` produced by providers instead of failing."""

    detect_cyclic_dependencies: bool = False
    """Fail as soon as a context ancestor chain repeats a binding."""

    max_resolution_depth: int = Field(default=64, ge=1)
    """Maximum nesting of child requests before resolution fails.

    Bounds uncontrolled recursion when cycle detection is disabled. Each level
    costs a handful of interpreter frames, so keep it well below
    ``sys.getrecursionlimit()``.
    """

    constructor_selection: Literal["best_match", "unique"] = "best_match"
    """Constructor selection mode: score candidates or require exactly one."""

    cache_pruning_interval: float | None = Field(default=None, gt=0)
    """Seconds between background prune passes; ``None`` prunes on demand only."""

    lock_mode: LockMode = LockMode.THREAD
    """Locking used by the plan cache, implicit bindings and the scope cache."""
