from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from dikernel.exceptions import (
    DIKernelAmbiguousArgumentError,
    DIKernelAmbiguousPropertyValueError,
    DIKernelUnmatchedPropertyValueError,
    DIKernelUnresolvedBindingError,
    DIKernelUnresolvedPropertyError,
)
from dikernel.parameters import MethodArgument, PropertyValue

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.activation.reference import InstanceReference
    from dikernel.planning.plan import PropertyInjectionDirective
    from dikernel.planning.targets import Target

logger = logging.getLogger(__name__)


@runtime_checkable
class Initializable(Protocol):
    """Instances notified once their injection completed."""

    def initialize(self) -> None: ...


@runtime_checkable
class Startable(Protocol):
    """Instances started on activation and stopped on deactivation."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


@runtime_checkable
class Disposable(Protocol):
    """Instances closed on deactivation."""

    def close(self) -> None: ...


class InitializationStrategy(Protocol):
    def initialize(self, context: Context, instance: Any) -> Any: ...


class ActivationStrategy:
    """Base class for activation and deactivation strategies; both steps default to no-ops."""

    def activate(self, context: Context, reference: InstanceReference) -> None:
        return None

    def deactivate(self, context: Context, reference: InstanceReference) -> None:
        return None


class PropertyInjectionStrategy:
    """Fill the plan's injectable properties from property values or bindings.

    Each property takes exactly one applicable ``PropertyValue`` when there is
    one and is resolved from bindings otherwise. A property with several
    applicable values is skipped and the first such ambiguity is raised once
    the other properties were injected. Non-inherited property values that
    apply to no property are an error.
    """

    def initialize(self, context: Context, instance: Any) -> Any:
        plan = context.plan
        properties = plan.properties if plan is not None else ()
        pending = [parameter for parameter in context.parameters if isinstance(parameter, PropertyValue)]
        ambiguity: DIKernelAmbiguousPropertyValueError | None = None

        for directive in properties:
            matches = [
                parameter for parameter in pending if parameter.applies_to_target(context, directive.target)
            ]
            if len(matches) > 1:
                if ambiguity is None:
                    ambiguity = DIKernelAmbiguousPropertyValueError(
                        f"More than one property value applies to property '{directive.name}' "
                        f"of {context.request.format_path()}.",
                    )
                for match in matches:
                    pending.remove(match)
                continue
            if matches:
                value = matches[0].get_value(context, directive.target)
                pending.remove(matches[0])
            else:
                value = self._resolve(context, directive)
            directive.injector(instance, value)

        if ambiguity is not None:
            raise ambiguity
        unmatched = [parameter for parameter in pending if not parameter.should_inherit]
        if unmatched:
            msg = (
                f"Property value '{unmatched[0].name}' matches no injectable property of "
                f"{context.request.format_path()}."
            )
            raise DIKernelUnmatchedPropertyValueError(msg)
        return instance

    def _resolve(self, context: Context, directive: PropertyInjectionDirective) -> Any:
        try:
            return directive.target.resolve_within(context)
        except DIKernelUnresolvedBindingError as error:
            msg = (
                f"Could not resolve property '{directive.name}' of {context.request.format_path()}: "
                f"{error}"
            )
            raise DIKernelUnresolvedPropertyError(msg) from error


class MethodInjectionStrategy:
    """Call the plan's injected methods in order, each with fully resolved arguments."""

    def initialize(self, context: Context, instance: Any) -> Any:
        plan = context.plan
        if plan is None:
            return instance
        for directive in plan.methods:
            values = [self._value(context, target) for target in directive.targets]
            directive.injector(instance, *values)
        return instance

    def _value(self, context: Context, target: Target) -> Any:
        matches = [
            parameter
            for parameter in context.parameters
            if isinstance(parameter, MethodArgument) and parameter.applies_to_target(context, target)
        ]
        if len(matches) > 1:
            names = ", ".join(repr(parameter) for parameter in matches)
            msg = (
                f"More than one method argument applies to target '{target.name}' of "
                f"{context.request.format_path()}: {names}."
            )
            raise DIKernelAmbiguousArgumentError(msg)
        if matches:
            return matches[0].get_value(context, target)
        return target.resolve_within(context)


class BindingActionStrategy(ActivationStrategy):
    """Run the callbacks attached to the binding of a context."""

    def initialize(self, context: Context, instance: Any) -> Any:
        for action in context.binding.initialization_actions:
            instance = action(context, instance)
        return instance

    def activate(self, context: Context, reference: InstanceReference) -> None:
        for action in context.binding.activation_actions:
            action(context, reference.instance)

    def deactivate(self, context: Context, reference: InstanceReference) -> None:
        for action in context.binding.deactivation_actions:
            action(context, reference.instance)


class InitializableStrategy:
    """Call ``initialize()`` on instances implementing ``Initializable``."""

    def initialize(self, context: Context, instance: Any) -> Any:
        if isinstance(instance, Initializable):
            instance.initialize()
        return instance


class StartableStrategy(ActivationStrategy):
    """Call ``start()`` on activation and ``stop()`` on deactivation."""

    def activate(self, context: Context, reference: InstanceReference) -> None:
        if isinstance(reference.instance, Startable):
            logger.debug("Starting %r", reference.instance)
            reference.instance.start()

    def deactivate(self, context: Context, reference: InstanceReference) -> None:
        if isinstance(reference.instance, Startable):
            logger.debug("Stopping %r", reference.instance)
            reference.instance.stop()


class DisposableStrategy(ActivationStrategy):
    """Call ``close()`` on deactivation."""

    def deactivate(self, context: Context, reference: InstanceReference) -> None:
        if isinstance(reference.instance, Disposable):
            logger.debug("Closing %r", reference.instance)
            reference.instance.close()


def default_initialization_strategies() -> list[InitializationStrategy]:
    return [
        PropertyInjectionStrategy(),
        MethodInjectionStrategy(),
        BindingActionStrategy(),
        InitializableStrategy(),
    ]


def default_activation_strategies() -> list[ActivationStrategy]:
    return [StartableStrategy(), BindingActionStrategy()]


def default_deactivation_strategies() -> list[ActivationStrategy]:
    return [BindingActionStrategy(), StartableStrategy(), DisposableStrategy()]


__all__ = [
    "ActivationStrategy",
    "BindingActionStrategy",
    "Disposable",
    "DisposableStrategy",
    "Initializable",
    "InitializableStrategy",
    "InitializationStrategy",
    "MethodInjectionStrategy",
    "PropertyInjectionStrategy",
    "Startable",
    "StartableStrategy",
    "default_activation_strategies",
    "default_deactivation_strategies",
    "default_initialization_strategies",
]
