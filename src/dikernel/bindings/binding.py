from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.activation.providers import Provider
    from dikernel.activation.request import Request
    from dikernel.parameters import Parameter

ScopeCallback = Callable[["Context"], Any]
"""Return the scope key owning an instance; ``None`` means transient."""

Condition = Callable[["Request"], bool]
"""Decide whether a binding applies to a request."""

InitializationAction = Callable[["Context", Any], Any]
"""Receive a new instance and return the instance to keep."""

LifecycleAction = Callable[["Context", Any], None]
"""Receive an instance being activated or deactivated."""


class BindingTarget(Enum):
    """Describe what a binding resolves to."""

    TYPE = "type"
    SELF = "self"
    CONSTANT = "constant"
    METHOD = "method"
    PROVIDER = "provider"


@dataclass(frozen=True, slots=True)
class BindingMetadata:
    """Hold a binding's name and arbitrary key/value data.

    Request constraints are predicates over this object.
    """

    name: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def has(self, key: str) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True, slots=True, eq=False)
class Binding:
    """Map a service to a provider together with its lifecycle configuration.

    Bindings are immutable once the kernel is built and compare by identity.
    Several bindings may exist for one service; resolution filters them by
    request constraint and condition, then ranks the survivors.
    """

    service: Any
    provider: Provider
    target: BindingTarget = BindingTarget.TYPE
    scope_callback: ScopeCallback | None = None
    condition: Condition | None = None
    metadata: BindingMetadata = field(default_factory=BindingMetadata)
    parameters: tuple[Parameter, ...] = ()
    initialization_actions: tuple[InitializationAction, ...] = ()
    activation_actions: tuple[LifecycleAction, ...] = ()
    deactivation_actions: tuple[LifecycleAction, ...] = ()
    is_implicit: bool = False

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None

    def matches(self, request: Request) -> bool:
        """Return whether the binding's condition accepts ``request``."""
        return self.condition is None or bool(self.condition(request))

    def get_scope(self, context: Context) -> Any:
        """Return the scope key for ``context``, ``None`` for transient bindings."""
        if self.scope_callback is None:
            return None
        return self.scope_callback(context)

    def reify(self, service: Any, provider: Provider) -> Binding:
        """Return an implicit copy of this binding for a closed service."""
        return dataclasses.replace(self, service=service, provider=provider, is_implicit=True)

    def __repr__(self) -> str:
        name = f", name={self.metadata.name!r}" if self.metadata.name is not None else ""
        return f"Binding({self.service!r} -> {self.provider!r}{name})"


__all__ = [
    "Binding",
    "BindingMetadata",
    "BindingTarget",
    "Condition",
    "InitializationAction",
    "LifecycleAction",
    "ScopeCallback",
]
