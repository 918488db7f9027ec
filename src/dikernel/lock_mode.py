from __future__ import annotations

import threading
from contextlib import AbstractContextManager, nullcontext
from enum import Enum


class LockMode(Enum):
    """Select locking behavior for the kernel's shared mutable state.

    Applies to the plan cache, the implicit binding table and the scope cache.
    Binding tables are immutable after build and never locked.
    """

    THREAD = "thread"
    """Guard shared caches with ``threading`` locks."""

    NONE = "none"
    """Disable locking for kernels used from a single thread."""

    def create_lock(self) -> AbstractContextManager[object]:
        """Return a new lock honoring this mode.

        Returns:
            A reentrant lock for ``THREAD`` and a no-op context manager for
            ``NONE``.

        """
        if self is LockMode.THREAD:
            return threading.RLock()
        return nullcontext()
