from typing import Any, Generic, TypeVar

import pytest

from dikernel.exceptions import DIKernelInvalidArgumentError, DIKernelNoConstructorsError
from dikernel.kernel import KernelBuilder
from dikernel.markers import ConstructorScore, Injected, inject_constructor, inject_method
from dikernel.planning.builder import ReflectionPlanBuilder
from dikernel.planning.plan import ConstructorInjectionDirective, Plan
from dikernel.planning.planner import Planner
from dikernel.planning.targets import TargetKind

T = TypeVar("T")


class Engine:
    pass


class Wheel:
    pass


class Car:
    engine: Injected[Engine]
    color: str = "red"

    @inject_constructor(score=ConstructorScore.HIGHEST)
    def __init__(self, wheels: list[Wheel], *, seats: int = 4) -> None:
        self.wheels = wheels
        self.seats = seats

    @inject_constructor
    @classmethod
    def from_engine(cls, engine: Engine) -> "Car":
        return cls([])

    @classmethod
    def unmarked(cls) -> "Car":
        return cls([])

    @inject_method
    def tune(self, engine: Engine) -> None:
        self.tuned = engine


class SportsCar(Car):
    @inject_method
    def race(self) -> None:
        self.raced = True


class Garage(Generic[T]):
    stored: Injected[T]

    def __init__(self, first: T, rest: list[T]) -> None:
        self.first = first
        self.rest = rest


class TestReflectionPlanBuilder:
    def test_constructors(self) -> None:
        plan = ReflectionPlanBuilder().build(Car)

        assert [directive.name for directive in plan.constructors] == ["__init__", "from_engine"]
        init = plan.constructors[0]
        assert init.score_override is ConstructorScore.HIGHEST
        assert [(target.name, target.positional) for target in init.targets] == [
            ("wheels", True),
            ("seats", False),
        ]
        assert all(target.kind is TargetKind.CONSTRUCTOR_PARAMETER for target in init.targets)
        assert plan.constructors[1].score_override is None

    def test_constructor_injector_passes_keyword_only_targets_by_name(self) -> None:
        plan = ReflectionPlanBuilder().build(Car)

        car = plan.constructors[0].inject([[Wheel()], 2])

        assert car.seats == 2
        assert len(car.wheels) == 1

    def test_properties_and_methods(self) -> None:
        plan = ReflectionPlanBuilder().build(SportsCar)

        assert [directive.name for directive in plan.properties] == ["engine"]
        assert plan.properties[0].target.kind is TargetKind.PROPERTY
        assert [directive.name for directive in plan.methods] == ["tune", "race"]

    def test_generic_alias_targets_are_closed(self) -> None:
        plan = ReflectionPlanBuilder().build(Garage[Engine])

        first, rest = plan.constructors[0].targets
        assert first.service is Engine
        assert rest.service is Engine
        assert plan.properties[0].target.service is Engine

    def test_class_without_init_has_parameterless_constructor(self) -> None:
        plan = ReflectionPlanBuilder().build(Engine)

        assert len(plan.constructors) == 1
        assert plan.constructors[0].targets == ()
        assert isinstance(plan.constructors[0].inject([]), Engine)

    def test_custom_selectors(self) -> None:
        builder = ReflectionPlanBuilder(
            property_selector=lambda owner, name, annotation: name == "color",
            constructor_selector=lambda owner, name, function: name == "unmarked",
            method_selector=lambda owner, name, function: False,
        )

        plan = builder.build(Car)

        assert [directive.name for directive in plan.properties] == ["color"]
        assert [directive.name for directive in plan.constructors] == ["__init__", "unmarked"]
        assert plan.methods == ()


class TestPlanner:
    def test_plan_is_cached(self) -> None:
        planner = Planner()

        assert not planner.has(Engine)
        plan = planner.get_plan(Engine)

        assert planner.get_plan(Engine) is plan
        assert planner.has(Engine)

    def test_add_rejects_duplicates(self) -> None:
        planner = Planner()
        planner.add(Plan(type=Engine))

        with pytest.raises(DIKernelInvalidArgumentError):
            planner.add(Plan(type=Engine))

    def test_kernel_uses_registered_plan(self) -> None:
        made: list[Any] = []

        def make() -> Engine:
            engine = Engine()
            made.append(engine)
            return engine

        plan = Plan(
            type=Engine,
            constructors=(ConstructorInjectionDirective(name="make", targets=(), injector=make),),
        )
        kernel = KernelBuilder().add_plan(plan).build()

        assert kernel.get(Engine) is made[0]

    def test_plan_without_constructors(self) -> None:
        kernel = KernelBuilder().add_plan(Plan(type=Wheel)).build()

        with pytest.raises(DIKernelNoConstructorsError, match="Wheel"):
            kernel.get(Wheel)
