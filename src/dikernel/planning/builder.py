from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterator
from typing import Annotated, Any, Protocol, get_origin, get_type_hints

from dikernel._internal.generics import substitute_typevars, typevar_map_for
from dikernel.markers import (
    INJECT_METHOD_ATTR,
    ConstructorScore,
    constructor_marker,
    split_annotation,
)
from dikernel.planning.plan import (
    ConstructorInjectionDirective,
    MethodInjectionDirective,
    Plan,
    PropertyInjectionDirective,
)
from dikernel.planning.targets import Target, TargetKind, is_injected_target_annotation

logger = logging.getLogger(__name__)

PropertySelector = Callable[[type, str, Any], bool]
"""Decide whether the class attribute ``name`` annotated with ``annotation`` is injected."""

MemberSelector = Callable[[type, str, Callable[..., Any]], bool]
"""Decide whether the member ``name`` of a class takes part in injection."""

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


class PlanBuilder(Protocol):
    """Produce the injection plan of one implementation type."""

    def build(self, implementation: Any) -> Plan: ...


def default_property_selector(owner: type, name: str, annotation: Any) -> bool:
    """Select class attributes annotated with ``Injected[T]``."""
    return is_injected_target_annotation(annotation)


def default_constructor_selector(owner: type, name: str, function: Callable[..., Any]) -> bool:
    """Select classmethods decorated with ``@inject_constructor``."""
    return bool(constructor_marker(function))


def default_method_selector(owner: type, name: str, function: Callable[..., Any]) -> bool:
    """Select methods decorated with ``@inject_method``."""
    return bool(getattr(function, INJECT_METHOD_ATTR, False))


class ReflectionPlanBuilder:
    """Build plans by inspecting classes, their annotations and their markers.

    Constructors are ``__init__`` plus alternative classmethod constructors,
    properties are annotated class attributes and methods are plain functions
    picked by the method selector. Closed generic aliases such as
    ``SqlRepo[int]`` get their TypeVars substituted in every target.
    """

    def __init__(
        self,
        *,
        property_selector: PropertySelector | None = None,
        constructor_selector: MemberSelector | None = None,
        method_selector: MemberSelector | None = None,
    ) -> None:
        """Initialize the builder with member selection predicates.

        Args:
            property_selector: Predicate over ``(cls, name, annotation)``;
                defaults to attributes marked ``Injected[T]``.
            constructor_selector: Predicate over ``(cls, name, classmethod)``
                picking alternative constructors; defaults to
                ``@inject_constructor``.
            method_selector: Predicate over ``(cls, name, function)``; defaults
                to ``@inject_method``.

        """
        self._property_selector = property_selector or default_property_selector
        self._constructor_selector = constructor_selector or default_constructor_selector
        self._method_selector = method_selector or default_method_selector

    def build(self, implementation: Any) -> Plan:
        """Build the plan of ``implementation``.

        Args:
            implementation: Class or closed generic alias to inspect.

        """
        cls = get_origin(implementation) or implementation
        typevars = typevar_map_for(implementation)
        plan = Plan(
            type=implementation,
            constructors=tuple(self._constructors(implementation, cls, typevars)),
            properties=tuple(self._properties(cls, typevars)),
            methods=tuple(self._methods(cls, typevars)),
        )
        logger.debug(
            "Built plan for %r: %d constructor(s), %d property(ies), %d method(s)",
            implementation,
            len(plan.constructors),
            len(plan.properties),
            len(plan.methods),
        )
        return plan

    def _constructors(
        self,
        implementation: Any,
        cls: type,
        typevars: dict[Any, Any],
    ) -> Iterator[ConstructorInjectionDirective]:
        init = cls.__init__
        if init is object.__init__ and cls.__new__ is object.__new__:
            targets: tuple[Target, ...] = ()
        else:
            source = init if init is not object.__init__ else cls.__new__
            hints = {**_type_hints(cls), **_type_hints(source)}
            targets = _signature_targets(
                _signature(cls),
                hints,
                kind=TargetKind.CONSTRUCTOR_PARAMETER,
                owner=cls,
                typevars=typevars,
            )
        marker = constructor_marker(init)
        yield ConstructorInjectionDirective(
            name="__init__",
            targets=targets,
            injector=_call_adapter(implementation, targets),
            score_override=marker if isinstance(marker, ConstructorScore) else None,
        )

        for name, member in _declared_members(cls):
            if not isinstance(member, classmethod):
                continue
            if not self._constructor_selector(cls, name, member):
                continue
            bound = getattr(cls, name)
            targets = _signature_targets(
                _signature(bound),
                _type_hints(member.__func__),
                kind=TargetKind.CONSTRUCTOR_PARAMETER,
                owner=cls,
                typevars=typevars,
            )
            marker = constructor_marker(member)
            yield ConstructorInjectionDirective(
                name=name,
                targets=targets,
                injector=_call_adapter(bound, targets),
                score_override=marker if isinstance(marker, ConstructorScore) else None,
            )

    def _properties(
        self,
        cls: type,
        typevars: dict[Any, Any],
    ) -> Iterator[PropertyInjectionDirective]:
        for name, annotation in _type_hints(cls).items():
            if not self._property_selector(cls, name, annotation):
                continue
            target = Target.from_annotation(
                name=name,
                annotation=_substitute(annotation, typevars),
                kind=TargetKind.PROPERTY,
                owner=cls,
            )
            yield PropertyInjectionDirective(target=target, injector=_property_injector(name))

    def _methods(
        self,
        cls: type,
        typevars: dict[Any, Any],
    ) -> Iterator[MethodInjectionDirective]:
        for name, member in _declared_members(cls):
            if not inspect.isfunction(member):
                continue
            if not self._method_selector(cls, name, member):
                continue
            parameters = list(_signature(member).parameters.values())[1:]
            targets = _signature_targets(
                inspect.Signature(parameters),
                _type_hints(member),
                kind=TargetKind.METHOD_PARAMETER,
                owner=cls,
                typevars=typevars,
            )
            yield MethodInjectionDirective(
                name=name,
                targets=targets,
                injector=_method_injector(member, targets),
            )


def _declared_members(cls: type) -> Iterator[tuple[str, Any]]:
    # Base classes first so members keep their declaration order; overrides
    # replace the inherited member in place.
    members: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        members.update(vars(klass))
    yield from members.items()


def _signature(function: Any) -> inspect.Signature:
    try:
        return inspect.signature(function)
    except (TypeError, ValueError):
        return inspect.Signature()


def _type_hints(obj: Any) -> dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except (NameError, TypeError, AttributeError):
        logger.debug("Falling back to raw annotations for %r", obj, exc_info=True)
        return dict(getattr(obj, "__annotations__", {}))


def _substitute(annotation: Any, typevars: dict[Any, Any]) -> Any:
    if not typevars:
        return annotation
    inner, metadata = split_annotation(annotation)
    inner = substitute_typevars(inner, typevars)
    if not metadata:
        return inner
    return Annotated[(inner, *metadata)]


def _signature_targets(
    signature: inspect.Signature,
    hints: dict[str, Any],
    *,
    kind: TargetKind,
    owner: Any,
    typevars: dict[Any, Any],
) -> tuple[Target, ...]:
    targets: list[Target] = []
    for parameter in signature.parameters.values():
        if parameter.kind in _VARIADIC:
            continue
        annotation = hints.get(parameter.name, parameter.annotation)
        targets.append(
            Target.from_annotation(
                name=parameter.name,
                annotation=_substitute(annotation, typevars),
                kind=kind,
                owner=owner,
                default=parameter.default,
                positional=parameter.kind in _POSITIONAL,
            ),
        )
    return tuple(targets)


def _call_adapter(function: Callable[..., Any], targets: tuple[Target, ...]) -> Callable[..., Any]:
    keywords = tuple(None if target.positional else target.name for target in targets)
    if not any(keywords):
        return function

    def injector(*values: Any) -> Any:
        args, kwargs = _split_values(keywords, values)
        return function(*args, **kwargs)

    return injector


def _method_injector(function: Callable[..., Any], targets: tuple[Target, ...]) -> Callable[..., Any]:
    keywords = tuple(None if target.positional else target.name for target in targets)

    def injector(instance: Any, *values: Any) -> Any:
        args, kwargs = _split_values(keywords, values)
        return function(instance, *args, **kwargs)

    return injector


def _split_values(
    keywords: tuple[str | None, ...],
    values: tuple[Any, ...],
) -> tuple[list[Any], dict[str, Any]]:
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for keyword, value in zip(keywords, values, strict=True):
        if keyword is None:
            args.append(value)
        else:
            kwargs[keyword] = value
    return args, kwargs


def _property_injector(name: str) -> Callable[[Any, Any], None]:
    def injector(instance: Any, value: Any) -> None:
        setattr(instance, name, value)

    return injector


__all__ = [
    "MemberSelector",
    "PlanBuilder",
    "PropertySelector",
    "ReflectionPlanBuilder",
    "default_constructor_selector",
    "default_method_selector",
    "default_property_selector",
]
