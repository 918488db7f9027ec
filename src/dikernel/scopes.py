from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from dikernel.activation.request import name_constraint

if TYPE_CHECKING:
    from types import TracebackType

    from dikernel.activation.context import Context
    from dikernel.kernel import Kernel
    from dikernel.parameters import Parameter

TRANSIENT = None
"""Scope key of instances that are never cached."""


def transient_scope(context: Context) -> Any:
    """Return no scope: every resolution builds a new instance."""
    return TRANSIENT


def singleton_scope(context: Context) -> Any:
    """Return the kernel itself, so one instance lives as long as the kernel."""
    return context.kernel


def thread_scope(context: Context) -> Any:
    """Return the current thread, so each thread gets its own instance."""
    return threading.current_thread()


class ScopeHandle:
    """Explicit scope key whose liveness is controlled by its owner.

    Instances cached under a handle stay alive until the handle is closed and
    the cache is pruned, independent of garbage collection.

    Examples:
        .. code-block:: python

            request_scope = ScopeHandle("request")
            kernel = KernelBuilder().add_type(Session, scope=lambda _: request_scope).build()
            with request_scope:
                session = kernel.get(Session)
            kernel.prune()  # deactivates ``session``

    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self._alive = True

    @property
    def is_alive(self) -> bool:
        return self._alive

    def close(self) -> None:
        """Mark the scope dead. Closing twice is a no-op."""
        self._alive = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "alive" if self._alive else "closed"
        return f"{type(self).__name__}({self.name!r}, {state})"


class ActivationBlock(ScopeHandle):
    """Scope every resolution made through it to the block itself.

    Requests created by the block carry a scope callback returning the block,
    so even transient bindings are cached for the block's lifetime. Closing the
    block deactivates and forgets those instances right away.
    """

    def __init__(self, kernel: Kernel, name: str | None = None) -> None:
        super().__init__(name)
        self.kernel = kernel

    def _scope(self, context: Context) -> Any:
        return self

    def get(self, service: Any, *parameters: Parameter, name: str | None = None) -> Any:
        """Resolve one instance of ``service`` within the block."""
        request = self.kernel.create_request(
            service,
            constraint=name_constraint(name),
            parameters=parameters,
            scope_callback=self._scope,
        )
        return self.kernel.resolve_single(request)

    def try_get(self, service: Any, *parameters: Parameter, name: str | None = None) -> Any:
        """Resolve one instance of ``service`` within the block, or ``None``."""
        request = self.kernel.create_request(
            service,
            constraint=name_constraint(name),
            parameters=parameters,
            is_optional=True,
            scope_callback=self._scope,
        )
        return self.kernel.resolve_single(request)

    def get_all(self, service: Any, *parameters: Parameter, name: str | None = None) -> list[Any]:
        """Resolve every instance of ``service`` within the block."""
        request = self.kernel.create_request(
            service,
            constraint=name_constraint(name),
            parameters=parameters,
            is_optional=True,
            is_unique=False,
            scope_callback=self._scope,
        )
        return list(self.kernel.resolve(request))

    def close(self) -> None:
        if not self.is_alive:
            return
        super().close()
        self.kernel.clear(self)


__all__ = [
    "TRANSIENT",
    "ActivationBlock",
    "ScopeHandle",
    "singleton_scope",
    "thread_scope",
    "transient_scope",
]
