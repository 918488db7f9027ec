from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dikernel.activation.request import Request
    from dikernel.bindings.binding import Binding

NAMED_MATCH = 3
CONDITIONAL = 2
EXPLICIT = 1
IMPLICIT = 0


class BindingPrecedenceComparer:
    """Rank bindings that survived filtering for one request.

    Higher scores win: a named binding selected by a request constraint beats a
    conditional binding, which beats an explicit unconditional binding, which
    beats an implicit one.
    """

    def score(self, binding: Binding, request: Request) -> int:
        if request.constraint is not None and binding.metadata.name is not None:
            return NAMED_MATCH
        if binding.is_conditional:
            return CONDITIONAL
        if binding.is_implicit:
            return IMPLICIT
        return EXPLICIT

    def select(self, bindings: Sequence[Binding], request: Request) -> list[Binding]:
        """Return the bindings of the top score group, in their original order."""
        if not bindings:
            return []
        scores = [self.score(binding, request) for binding in bindings]
        best = max(scores)
        return [binding for binding, score in zip(bindings, scores, strict=True) if score == best]


__all__ = ["BindingPrecedenceComparer"]
