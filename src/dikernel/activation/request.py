from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, get_args

from dikernel.exceptions import DIKernelInvalidArgumentError

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.bindings.binding import BindingMetadata, ScopeCallback
    from dikernel.parameters import Parameter
    from dikernel.planning.targets import Target

Constraint = Callable[["BindingMetadata"], bool]
"""Filter candidate bindings by their metadata."""


class Request:
    """Describe one request for instances of a service.

    Top-level requests come from ``Kernel.create_request``; child requests are
    created while resolving the targets of a context and form the ancestor
    chain used for conditions, cycle detection and error messages.
    """

    def __init__(  # noqa: PLR0913
        self,
        service: Any,
        *,
        constraint: Constraint | None = None,
        parameters: Sequence[Parameter] = (),
        parent_request: Request | None = None,
        parent_context: Context | None = None,
        target: Target | None = None,
        is_optional: bool = False,
        is_unique: bool = True,
        scope_callback: ScopeCallback | None = None,
    ) -> None:
        """Initialize a request.

        Args:
            service: Requested service type.
            constraint: Predicate over binding metadata, e.g. a name match.
            parameters: Explicit value overrides for this resolution.
            parent_request: Request whose resolution created this one.
            parent_context: Context whose target is being resolved.
            target: Injection target the request resolves, if any.
            is_optional: Yield nothing instead of failing when unresolved.
            is_unique: Require exactly one binding.
            scope_callback: Scope override applied before the binding's own.

        Raises:
            DIKernelInvalidArgumentError: If ``service`` is ``None``.

        """
        if service is None:
            msg = "A request requires a service."
            raise DIKernelInvalidArgumentError(msg)
        self.service = service
        self.constraint = constraint
        self.parameters: tuple[Parameter, ...] = tuple(parameters)
        self.parent_request = parent_request
        self.parent_context = parent_context
        self.target = target
        self.is_optional = is_optional
        self.is_unique = is_unique
        self.scope_callback = scope_callback
        self.depth = 0 if parent_request is None else parent_request.depth + 1

    @property
    def generic_arguments(self) -> tuple[Any, ...]:
        return get_args(self.service)

    def create_child(
        self,
        service: Any,
        parent_context: Context,
        target: Target | None,
        *,
        is_optional: bool = False,
        is_unique: bool = True,
    ) -> Request:
        """Create the request resolving ``target`` of ``parent_context``.

        The child carries the parent context's inheritable parameters, the
        target's constraint and this request's scope override.
        """
        return Request(
            service,
            constraint=target.constraint if target is not None else None,
            parameters=[parameter for parameter in parent_context.parameters if parameter.should_inherit],
            parent_request=self,
            parent_context=parent_context,
            target=target,
            is_optional=is_optional,
            is_unique=is_unique,
            scope_callback=self.scope_callback,
        )

    def get_scope(self, context: Context) -> Any:
        """Return the scope override for ``context``, or ``None`` when there is none."""
        if self.scope_callback is None:
            return None
        return self.scope_callback(context)

    def ancestors(self) -> Iterator[Request]:
        """Yield parent requests from the closest to the root."""
        request = self.parent_request
        while request is not None:
            yield request
            request = request.parent_request

    def format_path(self) -> str:
        """Return the chain of requested services from the root, e.g. ``A -> B -> C``."""
        chain = [self, *self.ancestors()]
        return " -> ".join(_service_name(request.service) for request in reversed(chain))

    def __repr__(self) -> str:
        return f"Request({self.service!r}, depth={self.depth})"


def name_constraint(name: str | None) -> Constraint | None:
    """Return a constraint accepting only bindings named ``name``; ``None`` for no name."""
    if name is None:
        return None

    def _matches_name(metadata: BindingMetadata) -> bool:
        return metadata.name == name

    return _matches_name


def _service_name(service: Any) -> str:
    if isinstance(service, type):
        return service.__qualname__
    return repr(service)


__all__ = ["Constraint", "Request", "name_constraint"]
