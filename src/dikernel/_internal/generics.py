from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar, get_args, get_origin

from dikernel.exceptions import DIKernelInvalidGenericTypeArgumentError


def open_key(service: Any) -> Any | None:
    """Normalize a service into an open-generic key, or ``None`` when it is not open.

    A bare generic class ``Repo`` becomes ``Repo[T]``; aliases keep their
    TypeVar structure so they can be matched against closed requests.

    Args:
        service: Candidate binding service.

    """
    origin = get_origin(service)
    if origin is None:
        parameters = _typevar_parameters(service)
        if not parameters:
            return None
        return _parameterize(service, parameters, fallback=service)

    args = get_args(service)
    if not args:
        return None
    normalized = _parameterize(
        origin,
        tuple(_normalize(argument) for argument in args),
        fallback=service,
    )
    return normalized if contains_typevar(normalized) else None


def contains_typevar(value: Any) -> bool:
    """Return whether a type expression still contains a ``TypeVar``."""
    if isinstance(value, TypeVar):
        return True
    origin = get_origin(value)
    if origin is not None:
        return any(contains_typevar(argument) for argument in get_args(value))
    return bool(_typevar_parameters(value))


def is_closed_generic(service: Any) -> bool:
    """Return whether ``service`` is a parameterized alias without TypeVars."""
    if get_origin(service) is None:
        return False
    args = get_args(service)
    return bool(args) and not any(contains_typevar(argument) for argument in args)


def substitute_typevars(value: Any, mapping: Mapping[TypeVar, Any]) -> Any:
    """Replace TypeVars in ``value`` using ``mapping``.

    Args:
        value: Type expression template.
        mapping: Resolved TypeVar arguments.

    """
    if isinstance(value, TypeVar):
        return mapping.get(value, value)
    origin = get_origin(value)
    if origin is None:
        parameters = _typevar_parameters(value)
        if parameters and all(parameter in mapping for parameter in parameters):
            return _parameterize(
                value,
                tuple(mapping[parameter] for parameter in parameters),
                fallback=value,
            )
        return value
    args = get_args(value)
    if not args:
        return value
    return _parameterize(
        origin,
        tuple(substitute_typevars(argument, mapping) for argument in args),
        fallback=value,
    )


def match_typevars(template: Any, concrete: Any) -> dict[TypeVar, Any] | None:
    """Match a closed type against an open template.

    Returns:
        The TypeVar assignments that turn ``template`` into ``concrete``, or
        ``None`` when the shapes differ.

    """
    mapping: dict[TypeVar, Any] = {}
    if _match(template, concrete, mapping):
        return mapping
    return None


def typevar_map_for(service: Any) -> dict[TypeVar, Any]:
    """Return the TypeVar assignments of a closed alias over its origin class."""
    origin = get_origin(service)
    if origin is None:
        return {}
    return dict(zip(_typevar_parameters(origin), get_args(service), strict=False))


def validate_typevar_arguments(mapping: Mapping[TypeVar, Any]) -> None:
    """Validate closed generic arguments against TypeVar constraints and bounds.

    Raises:
        DIKernelInvalidGenericTypeArgumentError: If an argument violates its
            TypeVar's constraints or bound.

    """
    for typevar, argument in mapping.items():
        constraints = getattr(typevar, "__constraints__", ())
        bound = getattr(typevar, "__bound__", None)
        if constraints:
            if any(_satisfies(argument, constraint) for constraint in constraints):
                continue
            options = ", ".join(repr(item) for item in constraints)
            msg = (
                f"Generic argument {argument!r} for TypeVar '{typevar.__name__}' must satisfy "
                f"one of: {options}."
            )
            raise DIKernelInvalidGenericTypeArgumentError(msg)
        if bound is not None and not _satisfies(argument, bound):
            msg = (
                f"Generic argument {argument!r} for TypeVar '{typevar.__name__}' must satisfy "
                f"bound {bound!r}."
            )
            raise DIKernelInvalidGenericTypeArgumentError(msg)


def specificity(value: Any) -> int:
    """Score how concrete an open key is; higher means fewer free TypeVars."""
    if isinstance(value, TypeVar):
        return 0
    origin = get_origin(value)
    if origin is None:
        return 2
    args = get_args(value)
    if not args:
        return 2
    return 1 + sum(specificity(argument) for argument in args)


def _match(template: Any, concrete: Any, mapping: dict[TypeVar, Any]) -> bool:
    if isinstance(template, TypeVar):
        known = mapping.get(template)
        if known is None:
            mapping[template] = concrete
            return True
        return known == concrete

    template_origin = get_origin(template)
    if template_origin is None:
        normalized = open_key(template)
        if normalized is not None:
            return _match(normalized, concrete, mapping)
        return template == concrete

    if get_origin(concrete) != template_origin:
        return False
    template_args = get_args(template)
    concrete_args = get_args(concrete)
    if len(template_args) != len(concrete_args):
        return False
    return all(
        _match(template_arg, concrete_arg, mapping)
        for template_arg, concrete_arg in zip(template_args, concrete_args, strict=True)
    )


def _normalize(value: Any) -> Any:
    if isinstance(value, TypeVar):
        return value
    origin = get_origin(value)
    if origin is not None:
        return _parameterize(
            origin,
            tuple(_normalize(argument) for argument in get_args(value)),
            fallback=value,
        )
    parameters = _typevar_parameters(value)
    if not parameters:
        return value
    return _parameterize(value, parameters, fallback=value)


def _typevar_parameters(value: Any) -> tuple[TypeVar, ...]:
    return tuple(
        parameter
        for parameter in getattr(value, "__parameters__", ())
        if isinstance(parameter, TypeVar)
    )


def _parameterize(origin: Any, args: tuple[Any, ...], *, fallback: Any) -> Any:
    try:
        if len(args) == 1:
            return origin[args[0]]
        return origin[args]
    except TypeError:
        return fallback


def _satisfies(argument: Any, constraint: Any) -> bool:
    if constraint is Any:
        return True
    argument_type = get_origin(argument) or argument
    constraint_type = get_origin(constraint) or constraint
    if isinstance(argument_type, type) and isinstance(constraint_type, type):
        try:
            return issubclass(argument_type, constraint_type)
        except TypeError:
            return False
    return argument == constraint


__all__ = [
    "contains_typevar",
    "is_closed_generic",
    "match_typevars",
    "open_key",
    "specificity",
    "substitute_typevars",
    "typevar_map_for",
    "validate_typevar_arguments",
]
