from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, get_origin

from dikernel._internal.generics import (
    contains_typevar,
    is_closed_generic,
    match_typevars,
    open_key,
    specificity,
    substitute_typevars,
    typevar_map_for,
    validate_typevar_arguments,
)
from dikernel._internal.type_checks import SelfBindingPolicy, is_settings_class
from dikernel.activation.providers import DefaultValueProvider, SettingsProvider, StandardProvider
from dikernel.bindings.binding import Binding, BindingTarget
from dikernel.lock_mode import LockMode
from dikernel.scopes import singleton_scope

if TYPE_CHECKING:
    from dikernel.activation.request import Request

logger = logging.getLogger(__name__)

BindingTable = Mapping[Any, Sequence[Binding]]


class MissingBindingResolver(Protocol):
    """Synthesize bindings for a request that no explicit binding satisfies.

    Resolvers run in a fixed order and the first non-empty result wins.
    """

    def resolve(self, bindings: BindingTable, request: Request) -> Sequence[Binding]: ...


class _ImplicitBindingCache:
    """Keep synthesized bindings stable per service so implicit scopes stay stable."""

    def __init__(self, lock_mode: LockMode) -> None:
        self._bindings: dict[Any, tuple[Binding, ...]] = {}
        self._lock = lock_mode.create_lock()

    def get_or_create(
        self,
        service: Any,
        factory: Callable[[], tuple[Binding, ...]],
    ) -> tuple[Binding, ...]:
        cached = self._bindings.get(service)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._bindings.get(service)
            if cached is None:
                cached = factory()
                self._bindings[service] = cached
                if cached:
                    logger.debug("Created %d implicit binding(s) for %r", len(cached), service)
            return cached


class OpenGenericBindingResolver:
    """Reify bindings registered for an open generic service for a closed request.

    A binding for ``Repo`` or ``Repo[T]`` satisfies a request for ``Repo[int]``.
    The most specific open key wins and, among equally specific keys, the one
    registered last. Generic implementation types are re-parameterized with the
    request's arguments.
    """

    def __init__(self, *, lock_mode: LockMode = LockMode.THREAD) -> None:
        self._cache = _ImplicitBindingCache(lock_mode)

    def resolve(self, bindings: BindingTable, request: Request) -> Sequence[Binding]:
        service = request.service
        if not is_closed_generic(service):
            return ()
        return self._cache.get_or_create(service, lambda: self._reify(bindings, service))

    def _reify(self, bindings: BindingTable, service: Any) -> tuple[Binding, ...]:
        best: tuple[int, int, Any, dict[Any, Any]] | None = None
        for order, key in enumerate(bindings):
            template = open_key(key)
            if template is None:
                continue
            mapping = match_typevars(template, service)
            if mapping is None:
                continue
            rank = (specificity(template), order)
            if best is None or rank >= best[:2]:
                best = (*rank, key, mapping)
        if best is None:
            return ()

        _, _, key, mapping = best
        validate_typevar_arguments(mapping)
        return tuple(
            binding.reify(service, self._reify_provider(binding, service))
            for binding in bindings[key]
        )

    def _reify_provider(self, binding: Binding, service: Any) -> Any:
        provider = binding.provider
        if not isinstance(provider, StandardProvider):
            return provider
        return StandardProvider(close_implementation(provider.type, service))


class SelfBindingResolver:
    """Bind concrete classes to themselves.

    Self-bound classes are transient. Pydantic settings classes are built from
    the environment through a zero-argument factory and kept as singletons.
    """

    def __init__(
        self,
        *,
        policy: SelfBindingPolicy | None = None,
        lock_mode: LockMode = LockMode.THREAD,
    ) -> None:
        self._policy = policy or SelfBindingPolicy()
        self._cache = _ImplicitBindingCache(lock_mode)

    def resolve(self, bindings: BindingTable, request: Request) -> Sequence[Binding]:
        service = request.service
        if not self._is_self_bindable(service):
            return ()
        return self._cache.get_or_create(service, lambda: (self._create(service),))

    def _is_self_bindable(self, service: Any) -> bool:
        if is_closed_generic(service):
            return self._policy.is_self_bindable(get_origin(service))
        if contains_typevar(service):
            return False
        return self._policy.is_self_bindable(service)

    def _create(self, service: Any) -> Binding:
        if is_settings_class(service):
            return Binding(
                service=service,
                provider=SettingsProvider(service),
                target=BindingTarget.SELF,
                scope_callback=singleton_scope,
                is_implicit=True,
            )
        validate_typevar_arguments(typevar_map_for(service))
        return Binding(
            service=service,
            provider=StandardProvider(service),
            target=BindingTarget.SELF,
            is_implicit=True,
        )


class DefaultValueBindingResolver:
    """Satisfy a target that declares a default value with that default."""

    def resolve(self, bindings: BindingTable, request: Request) -> Sequence[Binding]:
        target = request.target
        if target is None or not target.has_default:
            return ()
        return (
            Binding(
                service=request.service,
                provider=DefaultValueProvider(request.service),
                target=BindingTarget.CONSTANT,
                is_implicit=True,
            ),
        )


def close_implementation(implementation: Any, service: Any) -> Any:
    """Parameterize a generic implementation with the arguments of a closed service.

    ``close_implementation(SqlRepo, Repo[int])`` returns ``SqlRepo[int]`` when
    ``SqlRepo`` subclasses ``Repo[T]``; non-generic implementations are
    returned unchanged.

    Args:
        implementation: Implementation type of an open binding.
        service: Closed generic service being requested.

    """
    template = open_key(implementation)
    if template is None:
        return implementation
    if get_origin(template) is get_origin(service):
        mapping = match_typevars(template, service)
    else:
        mapping = _match_through_bases(get_origin(template), service)
    if not mapping:
        return implementation
    closed = substitute_typevars(template, mapping)
    return implementation if contains_typevar(closed) else closed


def _match_through_bases(cls: Any, service: Any) -> dict[Any, Any] | None:
    service_origin = get_origin(service)
    pending = list(getattr(cls, "__orig_bases__", ()))
    while pending:
        base = pending.pop(0)
        base_origin = get_origin(base)
        if base_origin is service_origin:
            return match_typevars(base, service)
        if base_origin is not None:
            pending.extend(getattr(base_origin, "__orig_bases__", ()))
    return None


def default_resolvers(lock_mode: LockMode = LockMode.THREAD) -> list[MissingBindingResolver]:
    """Return the default missing-binding resolver chain."""
    return [
        OpenGenericBindingResolver(lock_mode=lock_mode),
        SelfBindingResolver(lock_mode=lock_mode),
        DefaultValueBindingResolver(),
    ]


__all__ = [
    "BindingTable",
    "DefaultValueBindingResolver",
    "MissingBindingResolver",
    "OpenGenericBindingResolver",
    "SelfBindingResolver",
    "close_implementation",
    "default_resolvers",
]
