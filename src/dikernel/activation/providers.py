from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from dikernel.exceptions import DIKernelAmbiguousArgumentError, DIKernelConstructionError
from dikernel.parameters import ConstructorArgument

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.planning.plan import ConstructorInjectionDirective
    from dikernel.planning.targets import Target


@runtime_checkable
class Provider(Protocol):
    """Create instances for a binding.

    ``resolves_services`` tells cycle detection whether creating an instance
    may resolve further services. Providers whose instances need no
    initialization pipeline set ``initializes_instance``.
    """

    type: Any
    resolves_services: bool
    initializes_instance: bool

    def create(self, context: Context) -> Any: ...


class StandardProvider:
    """Construct an implementation type from its plan.

    The kernel's constructor selector picks one constructor directive, each of
    its targets is filled from a matching constructor argument or resolved
    through a child request, then the directive's injector is invoked.
    """

    resolves_services = True
    initializes_instance = False

    def __init__(self, implementation: Any) -> None:
        self.type = implementation

    def create(self, context: Context) -> Any:
        if context.plan is None:
            context.plan = context.kernel.planner.get_plan(self.type)
        directive = context.kernel.constructor_selector.select(context.plan, context)
        _check_constructor_arguments(directive, context)
        values = [constructor_argument_value(context, target) for target in directive.targets]
        return directive.inject(values)

    def __repr__(self) -> str:
        return f"StandardProvider({self.type!r})"


class ConstantProvider:
    """Return one pre-built value."""

    resolves_services = False
    initializes_instance = True

    def __init__(self, value: Any) -> None:
        self.value = value
        self.type = type(value)

    def create(self, context: Context) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"ConstantProvider({self.value!r})"


class CallbackProvider:
    """Call a factory with the resolving context.

    Results still run through the initialization pipeline, so ``Injected``
    attributes of the returned object are filled in.
    """

    resolves_services = True
    initializes_instance = False

    def __init__(self, callback: Callable[[Context], Any], implementation: Any = Any) -> None:
        self.callback = callback
        self.type = implementation

    def create(self, context: Context) -> Any:
        return self.callback(context)

    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"CallbackProvider({name})"


class ProviderCallbackProvider:
    """Resolve a user provider service from the kernel and delegate creation to it."""

    resolves_services = True
    initializes_instance = False

    def __init__(self, provider_service: Any) -> None:
        self.provider_service = provider_service
        self.type = Any

    def create(self, context: Context) -> Any:
        request = context.request.create_child(self.provider_service, context, None)
        provider = context.kernel.resolve_single(request)
        return provider.create(context)

    def __repr__(self) -> str:
        return f"ProviderCallbackProvider({self.provider_service!r})"


class DefaultValueProvider:
    """Return the default value declared by the request's target."""

    resolves_services = False
    initializes_instance = True

    def __init__(self, service: Any) -> None:
        self.type = service

    def create(self, context: Context) -> Any:
        target = context.request.target
        return None if target is None else target.default

    def __repr__(self) -> str:
        return f"DefaultValueProvider({self.type!r})"


class SettingsProvider:
    """Build a pydantic settings class from its environment with no arguments."""

    resolves_services = False
    initializes_instance = True

    def __init__(self, settings_type: type[Any]) -> None:
        self.type = settings_type

    def create(self, context: Context) -> Any:
        return self.type()

    def __repr__(self) -> str:
        return f"SettingsProvider({self.type!r})"


def constructor_argument_value(context: Context, target: Target) -> Any:
    """Return the value for a constructor target.

    Exactly one applicable ``ConstructorArgument`` supplies the value;
    otherwise the target is resolved through a child request.

    Raises:
        DIKernelAmbiguousArgumentError: If several constructor arguments apply.

    """
    matches = [
        parameter
        for parameter in context.parameters
        if isinstance(parameter, ConstructorArgument) and parameter.applies_to_target(context, target)
    ]
    if len(matches) > 1:
        names = ", ".join(repr(parameter) for parameter in matches)
        msg = (
            f"More than one constructor argument applies to target '{target.name}' of "
            f"{context.request.format_path()}: {names}."
        )
        raise DIKernelAmbiguousArgumentError(msg)
    if matches:
        return matches[0].get_value(context, target)
    return target.resolve_within(context)


def _check_constructor_arguments(directive: ConstructorInjectionDirective, context: Context) -> None:
    if directive.targets:
        return
    supplied = [
        parameter.name
        for parameter in context.parameters
        if isinstance(parameter, ConstructorArgument) and not parameter.should_inherit
    ]
    if supplied:
        msg = (
            f"Constructor arguments {supplied} were supplied for {context.request.format_path()}, "
            f"but the selected constructor '{directive.name}' of {_directive_owner(context)} takes "
            "no arguments."
        )
        raise DIKernelConstructionError(msg)


def _directive_owner(context: Context) -> str:
    plan = context.plan
    if plan is None:
        return repr(context.binding.provider.type)
    return getattr(plan.type, "__qualname__", repr(plan.type))


__all__ = [
    "CallbackProvider",
    "ConstantProvider",
    "DefaultValueProvider",
    "Provider",
    "ProviderCallbackProvider",
    "SettingsProvider",
    "StandardProvider",
    "constructor_argument_value",
]
