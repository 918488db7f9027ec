from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class _ActivationPass:
    owner: ActivationCache
    activated: dict[int, Any] = field(default_factory=dict)
    deactivated: dict[int, Any] = field(default_factory=dict)


_current_pass: ContextVar[_ActivationPass | None] = ContextVar(
    "dikernel_activation_pass",
    default=None,
)


class ActivationCache:
    """Remember which instances one pass already activated or deactivated.

    A pass spans one top-level resolution, release or prune. Passes are
    context-local, so concurrent resolutions never share markers, and nested
    passes of the same cache join the outer one. Marked instances are held
    until the outermost pass exits, which keeps their identities unique.

    Examples:
        .. code-block:: python

            with activation_cache.pass_():
                pipeline.activate(context, reference)
                pipeline.activate(context, reference)  # no-op

    """

    @contextmanager
    def pass_(self) -> Iterator[None]:
        """Enter a pass, or join the pass already active for this cache."""
        current = _current_pass.get()
        if current is not None and current.owner is self:
            yield
            return
        token = _current_pass.set(_ActivationPass(owner=self))
        try:
            yield
        finally:
            _current_pass.reset(token)

    def is_activated(self, instance: Any) -> bool:
        current = self._active_pass()
        return current is not None and id(instance) in current.activated

    def is_deactivated(self, instance: Any) -> bool:
        current = self._active_pass()
        return current is not None and id(instance) in current.deactivated

    def mark_activated(self, instance: Any) -> bool:
        """Mark ``instance`` activated; return ``False`` when it already was."""
        return self._mark(instance, deactivation=False)

    def mark_deactivated(self, instance: Any) -> bool:
        """Mark ``instance`` deactivated; return ``False`` when it already was."""
        return self._mark(instance, deactivation=True)

    def _mark(self, instance: Any, *, deactivation: bool) -> bool:
        current = self._active_pass()
        if current is None:
            return True
        markers = current.deactivated if deactivation else current.activated
        key = id(instance)
        if key in markers:
            return False
        markers[key] = instance
        return True

    def _active_pass(self) -> _ActivationPass | None:
        current = _current_pass.get()
        if current is None or current.owner is not self:
            return None
        return current


__all__ = ["ActivationCache"]
