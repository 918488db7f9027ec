from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from dikernel.activation.providers import DefaultValueProvider
from dikernel.activation.reference import InstanceReference
from dikernel.exceptions import (
    DIKernelCyclicDependencyError,
    DIKernelNullInstanceError,
    DIKernelResolutionDepthExceededError,
)
from dikernel.scopes import TRANSIENT

if TYPE_CHECKING:
    from dikernel.activation.providers import Provider
    from dikernel.activation.request import Request
    from dikernel.bindings.binding import Binding
    from dikernel.kernel import Kernel
    from dikernel.parameters import Parameter
    from dikernel.planning.plan import Plan
    from dikernel.settings import KernelSettings

logger = logging.getLogger(__name__)


class Context:
    """Hold the working state of one resolution: a request matched to a binding.

    ``resolve`` drives creation, scope caching, initialization and activation
    of exactly one instance. Contexts created for the targets of this context
    reach it through ``parent``.
    """

    def __init__(
        self,
        kernel: Kernel,
        request: Request,
        binding: Binding,
        *,
        plan: Plan | None = None,
    ) -> None:
        self.kernel = kernel
        self.request = request
        self.binding = binding
        self.plan = plan
        self.parameters: tuple[Parameter, ...] = (*request.parameters, *binding.parameters)

    @property
    def settings(self) -> KernelSettings:
        return self.kernel.settings

    @property
    def parent(self) -> Context | None:
        return self.request.parent_context

    @property
    def provider(self) -> Provider:
        return self.binding.provider

    @property
    def generic_arguments(self) -> tuple[Any, ...]:
        return self.request.generic_arguments

    def ancestors(self) -> Iterator[Context]:
        """Yield parent contexts from the closest to the root."""
        context = self.parent
        while context is not None:
            yield context
            context = context.parent

    def get_scope(self) -> Any:
        """Return the owning scope: the request's override, else the binding's scope."""
        scope = self.request.get_scope(self)
        if scope is None:
            scope = self.binding.get_scope(self)
        return scope

    def resolve(self) -> Any:
        """Create, cache, initialize and activate the instance for this context.

        Scoped instances are looked up in the scope cache under the scope's
        lock first; new ones are remembered before initialization so that
        property and method injection of their dependencies can reach them.
        Transient instances are initialized but neither cached nor activated.

        Raises:
            DIKernelResolutionDepthExceededError: If the request chain is
                deeper than ``max_resolution_depth``.
            DIKernelCyclicDependencyError: If cycle detection is enabled and an
                ancestor context is constructing the same binding.
            DIKernelNullInstanceError: If the provider returned ``None`` and
                null injection is disabled.

        """
        self._ensure_depth()
        scope = self.get_scope()
        if scope is TRANSIENT:
            return self._resolve_without_scope()
        return self._resolve_in_scope(scope)

    def _resolve_without_scope(self) -> Any:
        self._ensure_not_cyclic()
        instance = self.provider.create(self)
        if instance is None:
            self._on_null()
            return None
        if not self.provider.initializes_instance:
            self._ensure_plan(instance)
            instance = self.kernel.pipeline.initialize(self, instance)
        return instance

    def _resolve_in_scope(self, scope: Any) -> Any:
        cache = self.kernel.cache
        with cache.scope_lock(scope):
            cached = cache.try_get(self, scope)
            if cached is not None:
                return cached

            self._ensure_not_cyclic()
            reference = InstanceReference(self.provider.create(self))
            if reference.instance is None:
                self._on_null()
                return None

            cache.remember(self, scope, reference)
            try:
                if not self.provider.initializes_instance:
                    self._ensure_plan(reference.instance)
                    reference.instance = self.kernel.pipeline.initialize(self, reference.instance)
                self.kernel.pipeline.activate(self, reference)
            except BaseException:
                # A half-built instance must never be served from the cache.
                cache.forget(reference)
                raise
            return reference.instance

    def _ensure_plan(self, instance: Any) -> None:
        if self.plan is None:
            self.plan = self.kernel.planner.get_plan(type(instance))

    def _ensure_depth(self) -> None:
        limit = self.settings.max_resolution_depth
        if self.request.depth > limit:
            msg = (
                f"Resolution depth exceeded {limit} while resolving {self.request.format_path()}. "
                "Enable detect_cyclic_dependencies to locate the cycle, or raise "
                "max_resolution_depth for legitimately deep graphs."
            )
            raise DIKernelResolutionDepthExceededError(msg)

    def _ensure_not_cyclic(self) -> None:
        if not self.settings.detect_cyclic_dependencies or not self.provider.resolves_services:
            return
        for ancestor in self.ancestors():
            if ancestor.binding is self.binding:
                msg = f"Cyclic dependency detected while resolving {self.request.format_path()}."
                raise DIKernelCyclicDependencyError(msg)

    def _on_null(self) -> None:
        # A declared default of None is an explicit choice of the target.
        if self.settings.allow_null_injection or isinstance(self.provider, DefaultValueProvider):
            logger.debug("Provider %r returned None for %r", self.provider, self.request.service)
            return
        msg = (
            f"Provider {self.provider!r} returned None while resolving {self.request.format_path()}. "
            "Enable allow_null_injection to accept None values."
        )
        raise DIKernelNullInstanceError(msg)

    def __repr__(self) -> str:
        return f"Context({self.request.service!r}, binding={self.binding!r})"


__all__ = ["Context"]
