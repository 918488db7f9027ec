from __future__ import annotations

import collections.abc
import inspect
import types
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin

from dikernel.activation.request import name_constraint
from dikernel.markers import InjectedMarker, Named, split_annotation

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.activation.request import Constraint

_EMPTY: Any = inspect.Parameter.empty
_SEQUENCE_ORIGINS: tuple[Any, ...] = (
    list,
    collections.abc.Sequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)


class TargetKind(Enum):
    """Describe which member an injection target belongs to."""

    CONSTRUCTOR_PARAMETER = "constructor_parameter"
    PROPERTY = "property"
    METHOD_PARAMETER = "method_parameter"


class CollectionKind(Enum):
    """Describe how a multi-valued target receives its resolved instances."""

    LIST = "list"
    TUPLE = "tuple"


@dataclass(frozen=True, slots=True, eq=False)
class Target:
    """Describe one injection site: a constructor parameter, property or method parameter.

    Targets compare by identity. ``service`` is the declared type with
    ``Annotated`` metadata and ``None`` unions stripped; for collection targets
    it is the element type.
    """

    name: str
    service: Any
    kind: TargetKind
    owner: Any = None
    has_default: bool = False
    default: Any = None
    is_optional: bool = False
    positional: bool = True
    constraint_name: str | None = None
    collection: CollectionKind | None = None

    @classmethod
    def from_annotation(  # noqa: PLR0913
        cls,
        *,
        name: str,
        annotation: Any,
        kind: TargetKind,
        owner: Any = None,
        default: Any = _EMPTY,
        positional: bool = True,
    ) -> Target:
        """Build a target from a raw annotation.

        Args:
            name: Parameter or attribute name.
            annotation: Declared annotation, possibly ``Annotated``, optional or
                a collection type.
            kind: Member kind the target belongs to.
            owner: Class or callable that declares the target.
            default: Declared default value, ``inspect.Parameter.empty`` when
                there is none.
            positional: Whether the injector passes the value positionally.

        """
        service, metadata = split_annotation(annotation)
        constraint_name = next(
            (item.name for item in metadata if isinstance(item, Named)),
            None,
        )
        service, is_optional = _strip_optional(service)
        # Annotated may sit inside the optional union as well.
        inner, inner_metadata = split_annotation(service)
        if inner_metadata:
            service = inner
            if constraint_name is None:
                constraint_name = next(
                    (item.name for item in inner_metadata if isinstance(item, Named)),
                    None,
                )
        service, collection = _split_collection(service)
        if service is _EMPTY:
            service = Any
        return cls(
            name=name,
            service=service,
            kind=kind,
            owner=owner,
            has_default=default is not _EMPTY,
            default=None if default is _EMPTY else default,
            is_optional=is_optional,
            positional=positional,
            constraint_name=constraint_name,
            collection=collection,
        )

    @property
    def constraint(self) -> Constraint | None:
        """Return a metadata predicate derived from a ``Named`` marker, if any."""
        return name_constraint(self.constraint_name)

    def resolve_within(self, context: Context) -> Any:
        """Resolve this target's value through a child request of ``context``.

        Collection targets receive every matching instance; other targets
        receive exactly one, or ``None`` when optional and unresolvable.

        Args:
            context: Context of the instance being constructed or injected.

        """
        kernel = context.kernel
        if self.collection is not None:
            request = context.request.create_child(
                self.service,
                context,
                self,
                is_optional=True,
                is_unique=False,
            )
            values = list(kernel.resolve(request))
            if self.collection is CollectionKind.TUPLE:
                return tuple(values)
            return values

        request = context.request.create_child(
            self.service,
            context,
            self,
            is_optional=self.is_optional,
            is_unique=True,
        )
        return kernel.resolve_single(request)

    def __repr__(self) -> str:
        owner = getattr(self.owner, "__qualname__", self.owner)
        return f"Target({self.kind.value} {owner}.{self.name}: {self.service!r})"


def _strip_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = get_args(annotation)
        non_none = tuple(arg for arg in args if arg is not type(None))
        if len(non_none) != len(args):
            if len(non_none) == 1:
                return non_none[0], True
            return Union[non_none], True  # noqa: UP007
    return annotation, False


def _split_collection(annotation: Any) -> tuple[Any, CollectionKind | None]:
    origin = get_origin(annotation)
    if origin is None:
        return annotation, None
    args = get_args(annotation)
    if origin in _SEQUENCE_ORIGINS and len(args) == 1:
        return args[0], CollectionKind.LIST
    if origin is tuple and len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
        return args[0], CollectionKind.TUPLE
    return annotation, None


def is_injected_target_annotation(annotation: Any) -> bool:
    """Return whether ``annotation`` carries ``Injected`` at any optional nesting level."""
    _, metadata = split_annotation(annotation)
    if any(isinstance(item, InjectedMarker) for item in metadata):
        return True
    inner, _ = _strip_optional(annotation)
    _, inner_metadata = split_annotation(inner)
    return any(isinstance(item, InjectedMarker) for item in inner_metadata)


__all__ = [
    "CollectionKind",
    "Target",
    "TargetKind",
    "is_injected_target_annotation",
]
