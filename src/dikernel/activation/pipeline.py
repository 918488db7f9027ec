from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from dikernel.activation.caching import ActivationCache
from dikernel.exceptions import DIKernelNullInstanceError

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.activation.reference import InstanceReference
    from dikernel.activation.strategies import ActivationStrategy, InitializationStrategy


class Pipeline:
    """Run instances through ordered initialization, activation and deactivation strategies.

    Activation and deactivation happen at most once per instance within one
    activation cache pass; repeated calls inside the pass return immediately,
    which keeps cyclic object graphs from being processed twice. Strategy
    exceptions propagate unchanged.
    """

    def __init__(
        self,
        *,
        initialization_strategies: Sequence[InitializationStrategy] = (),
        activation_strategies: Sequence[ActivationStrategy] = (),
        deactivation_strategies: Sequence[ActivationStrategy] = (),
        activation_cache: ActivationCache | None = None,
    ) -> None:
        self.initialization_strategies = tuple(initialization_strategies)
        self.activation_strategies = tuple(activation_strategies)
        self.deactivation_strategies = tuple(deactivation_strategies)
        self.activation_cache = activation_cache or ActivationCache()

    def initialize(self, context: Context, instance: Any) -> Any:
        """Pass ``instance`` through every initialization strategy.

        Returns:
            The instance returned by the last strategy; strategies may replace it.

        Raises:
            DIKernelNullInstanceError: If a strategy returns ``None``.

        """
        for strategy in self.initialization_strategies:
            instance = strategy.initialize(context, instance)
            if instance is None:
                msg = (
                    f"{type(strategy).__name__} returned None while initializing "
                    f"{context.request.format_path()}."
                )
                raise DIKernelNullInstanceError(msg)
        return instance

    def activate(self, context: Context, reference: InstanceReference) -> None:
        with self.activation_cache.pass_():
            if not self.activation_cache.mark_activated(reference.instance):
                return
            for strategy in self.activation_strategies:
                strategy.activate(context, reference)

    def deactivate(self, context: Context, reference: InstanceReference) -> None:
        with self.activation_cache.pass_():
            if not self.activation_cache.mark_deactivated(reference.instance):
                return
            for strategy in self.deactivation_strategies:
                strategy.deactivate(context, reference)


__all__ = ["Pipeline"]
