"""Tests for binding selection, precedence and the kernel API."""

import abc
from typing import Annotated, Any

import pytest

from dikernel.activation.context import Context
from dikernel.activation.providers import ConstantProvider
from dikernel.bindings.binding import Binding, BindingTarget
from dikernel.exceptions import (
    DIKernelAmbiguousBindingError,
    DIKernelBuildError,
    DIKernelClosedError,
    DIKernelInvalidArgumentError,
    DIKernelUnresolvedBindingError,
)
from dikernel.kernel import Kernel, KernelBuilder
from dikernel.markers import Injected, Named
from dikernel.scopes import singleton_scope


class Weapon(abc.ABC):
    @abc.abstractmethod
    def hit(self, target: str) -> str: ...


class Sword(Weapon):
    def hit(self, target: str) -> str:
        return f"Chopped {target} clean in half"


class Shuriken(Weapon):
    def hit(self, target: str) -> str:
        return f"Pierced {target}'s armor"


class Samurai:
    def __init__(self, weapon: Weapon) -> None:
        self.weapon = weapon

    def attack(self, target: str) -> str:
        return self.weapon.hit(target)


class Ninja:
    def __init__(self, weapon: Annotated[Weapon, Named("ranged")]) -> None:
        self.weapon = weapon


class Sensei:
    pass


class Dojo:
    sensei: Injected[Sensei]


class SwordProvider:
    """Provider type resolved from the kernel itself."""

    def create(self, context: Context) -> Sword:
        return Sword()


class StaticProvider:
    resolves_services = False
    initializes_instance = False
    type = Shuriken

    def create(self, context: Context) -> Shuriken:
        return Shuriken()


class TestResolution:
    """Tests for resolving explicit and implicit bindings."""

    def test_get_returns_bound_implementation(self, builder: KernelBuilder) -> None:
        """A type binding constructs its implementation."""
        kernel = builder.add_type(Weapon, Sword).build()

        assert isinstance(kernel.get(Weapon), Sword)

    def test_concrete_class_binds_to_itself(self, builder: KernelBuilder) -> None:
        """Unbound concrete classes are constructed with their dependencies."""
        kernel = builder.add_type(Weapon, Sword).build()

        samurai = kernel.get(Samurai)

        assert isinstance(samurai.weapon, Sword)
        assert samurai.attack("the evildoers") == "Chopped the evildoers clean in half"

    def test_unresolved_dependency_reports_request_path(self, kernel: Kernel) -> None:
        """The error names the chain of requested services."""
        with pytest.raises(DIKernelUnresolvedBindingError, match="Samurai -> Weapon"):
            kernel.get(Samurai)

    def test_try_get_returns_none_when_unresolved(self, kernel: Kernel) -> None:
        """try_get turns an unresolved request into None."""
        assert kernel.try_get(Weapon) is None

    def test_equal_precedence_bindings_are_ambiguous(self, builder: KernelBuilder) -> None:
        """A unique request fails when two bindings share the top precedence."""
        kernel = builder.add_type(Weapon, Sword).add_type(Weapon, Shuriken).build()

        with pytest.raises(DIKernelAmbiguousBindingError, match="2 bindings"):
            kernel.get(Weapon)

    def test_get_all_returns_every_top_binding_in_order(self, builder: KernelBuilder) -> None:
        """get_all resolves all top-precedence bindings in registration order."""
        kernel = builder.add_type(Weapon, Sword).add_type(Weapon, Shuriken).build()

        weapons = kernel.get_all(Weapon)

        assert [type(weapon) for weapon in weapons] == [Sword, Shuriken]

    def test_get_all_returns_empty_list_when_unresolved(self, kernel: Kernel) -> None:
        assert kernel.get_all(Weapon) == []

    def test_get_by_name(self, builder: KernelBuilder) -> None:
        """Named lookups only consider bindings with that name."""
        kernel = (
            builder.add_type(Weapon, Sword, name="melee")
            .add_type(Weapon, Shuriken, name="ranged")
            .build()
        )

        assert isinstance(kernel.get(Weapon, name="ranged"), Shuriken)
        assert isinstance(kernel.get(Weapon, name="melee"), Sword)

    def test_named_annotation_selects_binding(self, builder: KernelBuilder) -> None:
        """Named(...) metadata on a target constrains its child request."""
        kernel = (
            builder.add_type(Weapon, Sword, name="melee")
            .add_type(Weapon, Shuriken, name="ranged")
            .build()
        )

        assert isinstance(kernel.get(Ninja).weapon, Shuriken)

    def test_resolve_selects_eagerly_and_creates_lazily(self, builder: KernelBuilder) -> None:
        """Binding selection fails immediately; instances are built while iterating."""
        created: list[str] = []

        def make_sword(context: Context) -> Sword:
            created.append("sword")
            return Sword()

        def make_shuriken(context: Context) -> Shuriken:
            created.append("shuriken")
            return Shuriken()

        kernel = builder.add_method(Weapon, make_sword).add_method(Weapon, make_shuriken).build()

        instances = kernel.resolve(kernel.create_request(Weapon, is_unique=False))
        assert created == []
        next(instances)
        assert created == ["sword"]
        list(instances)
        assert created == ["sword", "shuriken"]

        with pytest.raises(DIKernelUnresolvedBindingError):
            kernel.resolve(kernel.create_request(Samurai, constraint=lambda metadata: False))


class TestPrecedence:
    """Tests for ranking bindings that survive filtering."""

    def test_explicit_binding_beats_self_binding(self, builder: KernelBuilder) -> None:
        """Implicit bindings are only synthesized when no explicit binding matches."""

        class SharpSword(Sword):
            pass

        kernel = builder.add_type(Sword, SharpSword).build()

        assert type(kernel.get(Sword)) is SharpSword

    def test_conditional_binding_beats_unconditional(self, builder: KernelBuilder) -> None:
        """A binding whose condition holds outranks an unconditional one."""
        kernel = (
            builder.add_type(Weapon, Sword)
            .add_type(
                Weapon,
                Shuriken,
                when=lambda request: request.target is not None and request.target.owner is Samurai,
            )
            .build()
        )

        assert isinstance(kernel.get(Samurai).weapon, Shuriken)
        assert isinstance(kernel.get(Weapon), Sword)

    def test_named_match_beats_conditional(self, builder: KernelBuilder) -> None:
        """A named binding selected by a request constraint outranks conditions."""
        kernel = (
            builder.add_type(Weapon, Sword, name="a", metadata={"tier": 1})
            .add_type(Weapon, Shuriken, when=lambda request: True, metadata={"tier": 1})
            .build()
        )
        request = kernel.create_request(Weapon, constraint=lambda metadata: metadata.get("tier") == 1)

        assert isinstance(kernel.resolve_single(request), Sword)

    def test_failed_condition_filters_binding(self, builder: KernelBuilder) -> None:
        kernel = builder.add_type(Weapon, Sword, when=lambda request: False).build()

        assert kernel.try_get(Weapon) is None

    def test_can_resolve_ignoring_implicit_bindings(self, builder: KernelBuilder) -> None:
        """Implicit self-bindings count unless explicitly ignored."""
        kernel = builder.add_self(Sensei).build()

        assert kernel.can_resolve(kernel.create_request(Sword))
        assert not kernel.can_resolve(kernel.create_request(Sword), ignore_implicit_bindings=True)
        assert kernel.can_resolve(kernel.create_request(Sensei), ignore_implicit_bindings=True)
        assert not kernel.can_resolve(kernel.create_request(Weapon))


class TestBindingKinds:
    """Tests for the binding forms offered by KernelBuilder."""

    def test_constant_is_returned_as_is(self, builder: KernelBuilder) -> None:
        sword = Sword()
        kernel = builder.add_constant(Weapon, sword).build()

        assert kernel.get(Weapon) is sword
        assert kernel.cache.count() == 1

    def test_method_binding_receives_context(self, builder: KernelBuilder) -> None:
        """Factories receive the resolving context."""
        seen: list[Any] = []

        def make(context: Context) -> Sword:
            seen.append(context.request.service)
            return Sword()

        kernel = builder.add_method(Weapon, make).build()

        assert isinstance(kernel.get(Weapon), Sword)
        assert seen == [Weapon]

    def test_method_binding_result_gets_properties_injected(self, builder: KernelBuilder) -> None:
        kernel = builder.add_method(Dojo, lambda context: Dojo()).build()

        assert isinstance(kernel.get(Dojo).sensei, Sensei)

    def test_provider_type_is_resolved_from_kernel(self, builder: KernelBuilder) -> None:
        kernel = builder.add_provider(Weapon, SwordProvider).build()

        assert isinstance(kernel.get(Weapon), Sword)

    def test_provider_instance(self, builder: KernelBuilder) -> None:
        kernel = builder.add_provider(Weapon, StaticProvider()).build()

        assert isinstance(kernel.get(Weapon), Shuriken)

    def test_add_binding_registers_prebuilt_binding(self, builder: KernelBuilder) -> None:
        sword = Sword()
        binding = Binding(service=Weapon, provider=ConstantProvider(sword), target=BindingTarget.CONSTANT)
        kernel = builder.add_binding(binding).build()

        assert kernel.get_bindings(Weapon) == (binding,)
        assert kernel.get(Weapon) is sword

    def test_constant_scope_can_be_transient(self, builder: KernelBuilder) -> None:
        sword = Sword()
        kernel = builder.add_constant(Weapon, sword, scope=None).build()

        assert kernel.get(Weapon) is sword
        assert kernel.cache.count() == 0


class TestKernelLifecycle:
    """Tests for builder freezing and kernel closing."""

    def test_builder_rejects_changes_after_build(self, builder: KernelBuilder) -> None:
        builder.build()

        with pytest.raises(DIKernelBuildError):
            builder.add_type(Weapon, Sword)
        with pytest.raises(DIKernelBuildError):
            builder.build()

    def test_binding_requires_service(self, builder: KernelBuilder) -> None:
        with pytest.raises(DIKernelInvalidArgumentError):
            builder.add_type(None, Sword)

    def test_closed_kernel_rejects_resolution(self, builder: KernelBuilder) -> None:
        kernel = builder.add_self(Sword, scope=singleton_scope).build()
        kernel.close()

        assert kernel.is_closed
        with pytest.raises(DIKernelClosedError):
            kernel.get(Sword)
        with pytest.raises(DIKernelClosedError):
            kernel.begin_block()

    def test_close_twice_is_noop(self, kernel: Kernel) -> None:
        kernel.close()
        kernel.close()

        assert kernel.is_closed

    def test_context_manager_closes_kernel(self, builder: KernelBuilder) -> None:
        with builder.build() as kernel:
            kernel.get(Sensei)

        assert kernel.is_closed
