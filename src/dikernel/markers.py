from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])
_ANNOTATED_MARKER_MIN_ARGS = 2
INJECT_CONSTRUCTOR_ATTR = "__dikernel_inject_constructor__"
INJECT_METHOD_ATTR = "__dikernel_inject_method__"


class Named(NamedTuple):
    """Restrict a target to bindings declared with a matching name.

    Examples:
        .. code-block:: python

            class Samurai:
                def __init__(self, weapon: Annotated[Weapon, Named("sword")]) -> None:
                    self.weapon = weapon

    """

    name: str


class InjectedMarker:
    """Mark an annotation as injectable.

    On class attributes it selects the attribute for property injection; on
    pytest test parameters it selects the parameter for kernel resolution.
    """


class ConstructorScore(Enum):
    """Override the best-match scorer for one constructor candidate."""

    HIGHEST = "highest"
    """Always prefer this candidate."""

    LOWEST = "lowest"
    """Only pick this candidate when nothing else is available."""


if TYPE_CHECKING:
    Injected = Union[T, T]  # noqa: UP007,PYI016
    """Mark an attribute or test parameter for kernel injection.

    At runtime ``Injected[T]`` becomes ``Annotated[T, InjectedMarker()]``.
    """

else:

    class Injected:
        """Mark an attribute or test parameter for kernel injection.

        At runtime ``Injected[T]`` resolves to ``Annotated[T, InjectedMarker()]``.

        Examples:
            .. code-block:: python

                class Samurai:
                    weapon: Injected[Weapon]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectedMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                return _build_annotated((args[0], *args[1:], InjectedMarker()))
            return _build_annotated((item, InjectedMarker()))


def inject_constructor(
    function: F | None = None,
    *,
    score: ConstructorScore | None = None,
) -> Any:
    """Declare a constructor candidate for plan building.

    Decorate ``__init__`` to attach a score override, or decorate a classmethod
    to offer it as an alternative constructor.

    Args:
        function: Decorated callable when used without arguments.
        score: Optional override for the best-match scorer.

    Returns:
        The decorated callable, or a decorator when called with arguments.

    """

    def decorator(target: F) -> F:
        inner = target.__func__ if isinstance(target, classmethod) else target
        setattr(inner, INJECT_CONSTRUCTOR_ATTR, score or True)
        return target

    if function is None:
        return decorator
    return decorator(function)


def inject_method(function: F) -> F:
    """Declare a method for method injection, invoked after construction."""
    setattr(function, INJECT_METHOD_ATTR, True)
    return function


def is_injected_annotation(annotation: Any) -> bool:
    """Return whether ``annotation`` carries the ``Injected`` marker.

    Args:
        annotation: Annotation to inspect.

    """
    if get_origin(annotation) is not Annotated:
        return False
    args = get_args(annotation)
    if len(args) < _ANNOTATED_MARKER_MIN_ARGS:
        return False
    return any(isinstance(item, InjectedMarker) for item in args[1:])


def split_annotation(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated`` into its inner type and metadata.

    Args:
        annotation: Annotation to split.

    Returns:
        The inner type and the metadata tuple; non-annotated values return an
        empty metadata tuple.

    """
    if get_origin(annotation) is not Annotated:
        return annotation, ()
    args = get_args(annotation)
    return args[0], tuple(args[1:])


def constructor_marker(function: Any) -> ConstructorScore | bool | None:
    """Return the ``inject_constructor`` marker stored on a callable."""
    inner = function.__func__ if isinstance(function, (classmethod, staticmethod)) else function
    return getattr(inner, INJECT_CONSTRUCTOR_ATTR, None)


def _build_annotated(params: tuple[object, ...]) -> Any:
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]


__all__ = [
    "ConstructorScore",
    "Injected",
    "InjectedMarker",
    "Named",
    "constructor_marker",
    "inject_constructor",
    "inject_method",
    "is_injected_annotation",
    "split_annotation",
]
