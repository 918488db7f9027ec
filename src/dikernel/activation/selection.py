from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Protocol

from dikernel.exceptions import DIKernelAmbiguousConstructorError, DIKernelNoConstructorsError
from dikernel.markers import ConstructorScore
from dikernel.parameters import ConstructorArgument

if TYPE_CHECKING:
    from dikernel.activation.context import Context
    from dikernel.planning.plan import ConstructorInjectionDirective, Plan
    from dikernel.planning.targets import Target

logger = logging.getLogger(__name__)

# Any unsatisfiable target drops a candidate below every satisfiable one.
UNSATISFIABLE_PENALTY = 2**31


class ConstructorSelector(Protocol):
    """Pick the constructor directive used to create an instance."""

    def select(self, plan: Plan, context: Context) -> ConstructorInjectionDirective: ...


class UniqueConstructorSelector:
    """Require the plan to declare exactly one constructor."""

    def select(self, plan: Plan, context: Context) -> ConstructorInjectionDirective:
        _ensure_constructors(plan, context)
        if len(plan.constructors) > 1:
            names = ", ".join(directive.name for directive in plan.constructors)
            msg = (
                f"{_plan_name(plan)} declares {len(plan.constructors)} constructors ({names}) "
                f"while resolving {context.request.format_path()}; exactly one is allowed."
            )
            raise DIKernelAmbiguousConstructorError(msg)
        return plan.constructors[0]


class ConstructorScorer:
    """Score a constructor candidate by how many of its targets can be satisfied.

    A target is satisfiable when a constructor argument applies to it, when a
    binding can resolve it, or when it declares a default, is optional or
    collects many instances. ``ConstructorScore`` markers override the score.
    """

    def score(self, context: Context, directive: ConstructorInjectionDirective) -> int:
        if directive.score_override is ConstructorScore.HIGHEST:
            return sys.maxsize
        if directive.score_override is ConstructorScore.LOWEST:
            return -sys.maxsize
        score = 1
        for target in directive.targets:
            score += 1
            if not self.is_satisfiable(context, target) and score > 0:
                score -= UNSATISFIABLE_PENALTY
        return score

    def is_satisfiable(self, context: Context, target: Target) -> bool:
        if any(
            isinstance(parameter, ConstructorArgument) and parameter.applies_to_target(context, target)
            for parameter in context.parameters
        ):
            return True
        if target.has_default or target.is_optional or target.collection is not None:
            return True
        request = context.request.create_child(target.service, context, target)
        return context.kernel.can_resolve(request)


class BestMatchConstructorSelector:
    """Pick the highest scoring constructor; a tie at the top score is an error.

    Candidates are evaluated in declaration order.
    """

    def __init__(self, scorer: ConstructorScorer | None = None) -> None:
        self.scorer = scorer or ConstructorScorer()

    def select(self, plan: Plan, context: Context) -> ConstructorInjectionDirective:
        _ensure_constructors(plan, context)
        if len(plan.constructors) == 1:
            return plan.constructors[0]

        best: list[ConstructorInjectionDirective] = []
        best_score = 0
        for directive in plan.constructors:
            score = self.scorer.score(context, directive)
            if not best or score > best_score:
                best, best_score = [directive], score
            elif score == best_score:
                best.append(directive)

        if len(best) > 1:
            names = ", ".join(directive.name for directive in best)
            msg = (
                f"Constructors {names} of {_plan_name(plan)} tie at score {best_score} while "
                f"resolving {context.request.format_path()}."
            )
            raise DIKernelAmbiguousConstructorError(msg)
        logger.debug("Selected constructor %s of %s (score %d)", best[0].name, _plan_name(plan), best_score)
        return best[0]


def _ensure_constructors(plan: Plan, context: Context) -> None:
    if not plan.constructors:
        msg = f"{_plan_name(plan)} declares no constructors (resolving {context.request.format_path()})."
        raise DIKernelNoConstructorsError(msg)


def _plan_name(plan: Plan) -> str:
    return getattr(plan.type, "__qualname__", repr(plan.type))


__all__ = [
    "BestMatchConstructorSelector",
    "ConstructorScorer",
    "ConstructorSelector",
    "UniqueConstructorSelector",
]
