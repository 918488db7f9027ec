from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from dikernel.markers import ConstructorScore
from dikernel.planning.targets import Target


@dataclass(frozen=True, slots=True)
class ConstructorInjectionDirective:
    """Describe one constructor candidate of a plan.

    ``injector`` receives the resolved target values positionally, in target
    order, and returns the new instance.
    """

    name: str
    targets: tuple[Target, ...]
    injector: Callable[..., Any]
    score_override: ConstructorScore | None = None

    def inject(self, values: Sequence[Any]) -> Any:
        """Invoke the constructor with resolved target values."""
        return self.injector(*values)


@dataclass(frozen=True, slots=True)
class PropertyInjectionDirective:
    """Describe one injectable property; ``injector`` is ``(instance, value) -> None``."""

    target: Target
    injector: Callable[[Any, Any], None]

    @property
    def name(self) -> str:
        return self.target.name


@dataclass(frozen=True, slots=True)
class MethodInjectionDirective:
    """Describe one injected method; ``injector`` is ``(instance, *values) -> None``."""

    name: str
    targets: tuple[Target, ...]
    injector: Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Plan:
    """Describe how to construct and inject instances of one implementation type.

    Plans are built once per type, never mutated after publication, and shared
    by every resolution of that type.
    """

    type: Any
    constructors: tuple[ConstructorInjectionDirective, ...] = ()
    properties: tuple[PropertyInjectionDirective, ...] = ()
    methods: tuple[MethodInjectionDirective, ...] = ()


__all__ = [
    "ConstructorInjectionDirective",
    "MethodInjectionDirective",
    "Plan",
    "PropertyInjectionDirective",
]
