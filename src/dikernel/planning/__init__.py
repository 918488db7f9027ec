from dikernel.planning.builder import (
    MemberSelector,
    PlanBuilder,
    PropertySelector,
    ReflectionPlanBuilder,
)
from dikernel.planning.plan import (
    ConstructorInjectionDirective,
    MethodInjectionDirective,
    Plan,
    PropertyInjectionDirective,
)
from dikernel.planning.planner import Planner
from dikernel.planning.targets import CollectionKind, Target, TargetKind

__all__ = [
    "CollectionKind",
    "ConstructorInjectionDirective",
    "MemberSelector",
    "MethodInjectionDirective",
    "Plan",
    "PlanBuilder",
    "Planner",
    "PropertyInjectionDirective",
    "PropertySelector",
    "ReflectionPlanBuilder",
    "Target",
    "TargetKind",
]
