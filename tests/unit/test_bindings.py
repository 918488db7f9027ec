from typing import Any

import pytest

from dikernel.activation.providers import ConstantProvider, StandardProvider
from dikernel.activation.request import Request, name_constraint
from dikernel.bindings.binding import Binding, BindingMetadata, BindingTarget
from dikernel.bindings.precedence import BindingPrecedenceComparer
from dikernel.bindings.resolvers import DefaultValueBindingResolver, SelfBindingResolver
from dikernel.exceptions import DIKernelInvalidArgumentError
from dikernel.parameters import ConstructorArgument
from dikernel.planning.targets import Target, TargetKind


class Service:
    pass


def _binding(**kwargs: Any) -> Binding:
    return Binding(service=Service, provider=ConstantProvider(Service()), **kwargs)


class TestBindingMetadata:
    def test_data_is_read_only(self) -> None:
        metadata = BindingMetadata(name="primary", data={"tier": 1})

        assert metadata.has("tier")
        assert metadata.get("tier") == 1
        assert metadata.get("missing", "default") == "default"
        with pytest.raises(TypeError):
            metadata.data["tier"] = 2  # type: ignore[index]

    def test_name_constraint(self) -> None:
        constraint = name_constraint("primary")

        assert constraint is not None
        assert constraint(BindingMetadata(name="primary"))
        assert not constraint(BindingMetadata())
        assert name_constraint(None) is None


class TestBinding:
    def test_condition(self) -> None:
        binding = _binding(condition=lambda request: request.depth > 0)
        parent = Request(Service)

        assert binding.is_conditional
        assert not binding.matches(parent)
        assert binding.matches(Request(Service, parent_request=parent))

    def test_reify_returns_implicit_copy(self) -> None:
        binding = _binding(target=BindingTarget.TYPE, metadata=BindingMetadata(name="primary"))
        provider = StandardProvider(Service)

        reified = binding.reify(list[Service], provider)

        assert reified is not binding
        assert reified.is_implicit
        assert reified.service == list[Service]
        assert reified.provider is provider
        assert reified.metadata is binding.metadata

    def test_bindings_compare_by_identity(self) -> None:
        assert _binding() != _binding()


class TestPrecedenceComparer:
    @pytest.mark.parametrize(
        ("binding", "constraint", "score"),
        [
            (_binding(metadata=BindingMetadata(name="primary")), name_constraint("primary"), 3),
            (_binding(condition=lambda request: True), None, 2),
            (_binding(), None, 1),
            (_binding(metadata=BindingMetadata(name="primary")), None, 1),
            (_binding(is_implicit=True), None, 0),
        ],
    )
    def test_score(self, binding: Binding, constraint: Any, score: int) -> None:
        request = Request(Service, constraint=constraint)

        assert BindingPrecedenceComparer().score(binding, request) == score

    def test_select_keeps_top_group_in_order(self) -> None:
        implicit = _binding(is_implicit=True)
        first = _binding()
        second = _binding()

        selected = BindingPrecedenceComparer().select([implicit, first, second], Request(Service))

        assert selected == [first, second]

    def test_select_nothing(self) -> None:
        assert BindingPrecedenceComparer().select([], Request(Service)) == []


class TestRequest:
    def test_service_is_required(self) -> None:
        with pytest.raises(DIKernelInvalidArgumentError):
            Request(None)

    def test_child_request_inherits_parameters_and_scope(self) -> None:
        inherited = ConstructorArgument("a", 1, should_inherit=True)
        local = ConstructorArgument("b", 2)
        scope = object()
        parent = Request(Service, parameters=[inherited, local], scope_callback=lambda context: scope)

        class FakeContext:
            parameters = (inherited, local)

        target = Target.from_annotation(name="dependency", annotation=int, kind=TargetKind.PROPERTY)
        child = parent.create_child(int, FakeContext(), target)  # type: ignore[arg-type]

        assert child.parameters == (inherited,)
        assert child.depth == 1
        assert child.parent_request is parent
        assert child.target is target
        assert child.get_scope(None) is scope  # type: ignore[arg-type]
        assert list(child.ancestors()) == [parent]
        assert child.format_path() == "Service -> int"


class TestMissingBindingResolvers:
    def test_default_value_resolver_requires_default(self) -> None:
        resolver = DefaultValueBindingResolver()
        without_default = Target.from_annotation(name="x", annotation=int, kind=TargetKind.PROPERTY)
        with_default = Target.from_annotation(name="x", annotation=int, kind=TargetKind.PROPERTY, default=5)

        assert resolver.resolve({}, Request(int, target=without_default)) == ()
        (binding,) = resolver.resolve({}, Request(int, target=with_default))
        assert binding.is_implicit
        assert binding.target is BindingTarget.CONSTANT

    def test_self_binding_resolver_caches_bindings(self) -> None:
        resolver = SelfBindingResolver()

        (first,) = resolver.resolve({}, Request(Service))
        (second,) = resolver.resolve({}, Request(Service))

        assert first is second
        assert first.is_implicit
        assert first.scope_callback is None
