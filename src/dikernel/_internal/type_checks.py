from __future__ import annotations

import datetime
import decimal
import inspect
import pathlib
import types
import uuid
from dataclasses import dataclass
from typing import Any, TypeGuard

from pydantic_settings import BaseSettings

_UNBINDABLE_MODULES = frozenset({"builtins", "typing", "typing_extensions", "collections.abc"})


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_settings_class(candidate: object) -> TypeGuard[type[BaseSettings]]:
    """Return whether ``candidate`` subclasses ``pydantic_settings.BaseSettings``.

    Settings classes self-bind through a zero-argument factory in singleton
    scope; their fields come from the environment rather than from bindings.
    """
    if not is_runtime_class(candidate):
        return False
    try:
        return issubclass(candidate, BaseSettings) and candidate is not BaseSettings
    except TypeError:
        return False


@dataclass(frozen=True, slots=True)
class SelfBindingPolicy:
    """Decide which requested services may bind to themselves implicitly."""

    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
    )

    def is_self_bindable(self, candidate: object) -> TypeGuard[type[Any]]:
        """Return true when a requested service can be constructed as itself.

        Args:
            candidate: Requested service.

        """
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ in _UNBINDABLE_MODULES:
            return False
        if inspect.isabstract(candidate):
            return False
        if getattr(candidate, "_is_protocol", False):
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)


__all__ = ["SelfBindingPolicy", "is_runtime_class", "is_settings_class"]
