from __future__ import annotations

import weakref
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from dikernel.exceptions import DIKernelInvalidArgumentError

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.planning.targets import Target

ValueCallback = Callable[["Context", "Target"], Any]
"""Compute a parameter value from the resolving context and the injected target."""

_MISSING: Any = object()


class Parameter:
    """Carry an explicit value override for one resolution.

    Parameters travel with a request (or a binding) and are matched against
    injection targets by subclasses. Inheritable parameters flow into child
    requests created while resolving the targets of the current context.
    """

    def __init__(
        self,
        name: str,
        value: Any = _MISSING,
        *,
        callback: ValueCallback | None = None,
        should_inherit: bool = False,
    ) -> None:
        """Initialize a parameter from a fixed value or a value callback.

        Args:
            name: Name of the target the parameter applies to.
            value: Fixed value returned for every matching target.
            callback: Callable invoked with ``(context, target)`` to compute the
                value lazily. Mutually exclusive with ``value``.
            should_inherit: Flow the parameter into child requests.

        Raises:
            DIKernelInvalidArgumentError: If ``name`` is empty or both/neither
                of ``value`` and ``callback`` are given.

        """
        if not name:
            msg = f"{type(self).__name__} requires a non-empty name."
            raise DIKernelInvalidArgumentError(msg)
        if (value is _MISSING) == (callback is None):
            msg = f"{type(self).__name__} '{name}' requires exactly one of value or callback."
            raise DIKernelInvalidArgumentError(msg)
        self.name = name
        self.should_inherit = should_inherit
        if callback is None:
            self._callback: ValueCallback = lambda _context, _target: value
        else:
            self._callback = callback

    def get_value(self, context: Context, target: Target | None) -> Any:
        """Return the value for ``target`` resolved within ``context``."""
        return self._callback(context, target)

    def applies_to_target(self, context: Context, target: Target) -> bool:
        """Return whether this parameter supplies ``target``."""
        return self.name == target.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Parameter):
            return NotImplemented
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash((type(self), self.name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, should_inherit={self.should_inherit})"


class ConstructorArgument(Parameter):
    """Override a constructor parameter by name."""


class TypeMatchingConstructorArgument(ConstructorArgument):
    """Override every constructor parameter whose declared service is ``service``."""

    def __init__(
        self,
        service: Any,
        value: Any = _MISSING,
        *,
        callback: ValueCallback | None = None,
        should_inherit: bool = False,
    ) -> None:
        name = getattr(service, "__name__", repr(service))
        super().__init__(name, value, callback=callback, should_inherit=should_inherit)
        self.service = service

    def applies_to_target(self, context: Context, target: Target) -> bool:
        return target.service == self.service


class PropertyValue(Parameter):
    """Override an injectable property by name."""


class WeakPropertyValue(PropertyValue):
    """Override an injectable property with a weakly referenced value.

    The value does not stay alive because a cached binding parameter holds it;
    once collected the property receives ``None``.
    """

    def __init__(self, name: str, value: Any, *, should_inherit: bool = False) -> None:
        reference = weakref.ref(value)
        super().__init__(
            name,
            callback=lambda _context, _target: reference(),
            should_inherit=should_inherit,
        )


class MethodArgument(Parameter):
    """Override a parameter of an injected method by name."""


__all__ = [
    "ConstructorArgument",
    "MethodArgument",
    "Parameter",
    "PropertyValue",
    "TypeMatchingConstructorArgument",
    "ValueCallback",
    "WeakPropertyValue",
]
