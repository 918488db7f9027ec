from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar, overload

from typing_extensions import Self

from dikernel.activation.context import Context
from dikernel.activation.pipeline import Pipeline
from dikernel.activation.providers import (
    CallbackProvider,
    ConstantProvider,
    Provider,
    ProviderCallbackProvider,
    StandardProvider,
)
from dikernel.activation.reference import InstanceReference
from dikernel.activation.request import Constraint, Request, name_constraint
from dikernel.activation.selection import (
    BestMatchConstructorSelector,
    ConstructorSelector,
    UniqueConstructorSelector,
)
from dikernel.activation.strategies import (
    ActivationStrategy,
    InitializationStrategy,
    default_activation_strategies,
    default_deactivation_strategies,
    default_initialization_strategies,
)
from dikernel.bindings.binding import (
    Binding,
    BindingMetadata,
    BindingTarget,
    Condition,
    InitializationAction,
    LifecycleAction,
    ScopeCallback,
)
from dikernel.bindings.precedence import BindingPrecedenceComparer
from dikernel.bindings.resolvers import MissingBindingResolver, default_resolvers
from dikernel.caching import Cache, CachePruner
from dikernel.exceptions import (
    DIKernelAmbiguousBindingError,
    DIKernelBuildError,
    DIKernelClosedError,
    DIKernelInvalidArgumentError,
    DIKernelUnresolvedBindingError,
)
from dikernel.planning.builder import PlanBuilder, ReflectionPlanBuilder
from dikernel.planning.planner import Planner
from dikernel.scopes import ActivationBlock, singleton_scope
from dikernel.settings import KernelSettings

if TYPE_CHECKING:
    from types import TracebackType

    from dikernel.parameters import Parameter
    from dikernel.planning.plan import Plan

T = TypeVar("T")

logger = logging.getLogger(__name__)


class KernelBuilder:
    """Collect bindings and components, then freeze them into a ``Kernel``.

    Every ``add_*`` method returns the builder, so registrations can be chained.
    After ``build`` the builder refuses further changes.

    Examples:
        .. code-block:: python

            kernel = (
                KernelBuilder()
                .add_type(Weapon, Sword, scope=singleton_scope)
                .add_type(Weapon, Shuriken, name="ranged")
                .add_constant(Config, Config(debug=True))
                .build()
            )
            kernel.get(Weapon)  # Sword, the same instance on every call

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        settings: KernelSettings | None = None,
        resolvers: Sequence[MissingBindingResolver] | None = None,
        precedence_comparer: BindingPrecedenceComparer | None = None,
        plan_builder: PlanBuilder | None = None,
        constructor_selector: ConstructorSelector | None = None,
        initialization_strategies: Sequence[InitializationStrategy] | None = None,
        activation_strategies: Sequence[ActivationStrategy] | None = None,
        deactivation_strategies: Sequence[ActivationStrategy] | None = None,
    ) -> None:
        """Initialize a builder.

        Components left as ``None`` use the defaults: the open-generic,
        self-binding and default-value resolver chain, reflection plans,
        the constructor selection named by ``settings`` and the standard
        strategy lists.

        Args:
            settings: Kernel settings; read from ``DIKERNEL_*`` environment
                variables when omitted.
            resolvers: Missing-binding resolvers, in the order they run.
            precedence_comparer: Ranks candidate bindings of one request.
            plan_builder: Builds plans for implementation types.
            constructor_selector: Picks one constructor per creation.
            initialization_strategies: Strategies run once per new instance.
            activation_strategies: Strategies run when a scoped instance is
                activated.
            deactivation_strategies: Strategies run when a scoped instance is
                released, pruned or cleared.

        """
        self._settings = settings
        self._resolvers = None if resolvers is None else list(resolvers)
        self._precedence_comparer = precedence_comparer
        self._plan_builder = plan_builder
        self._constructor_selector = constructor_selector
        self._initialization_strategies = initialization_strategies
        self._activation_strategies = activation_strategies
        self._deactivation_strategies = deactivation_strategies
        self._bindings: dict[Any, list[Binding]] = {}
        self._plans: list[Plan] = []
        self._built = False

    def add_binding(self, binding: Binding) -> Self:
        """Register a fully configured binding."""
        self._ensure_not_built()
        self._bindings.setdefault(binding.service, []).append(binding)
        return self

    def add_type(  # noqa: PLR0913
        self,
        service: Any,
        implementation: Any = None,
        *,
        name: str | None = None,
        scope: ScopeCallback | None = None,
        when: Condition | None = None,
        metadata: Mapping[str, Any] | None = None,
        parameters: Sequence[Parameter] = (),
        on_initialization: Sequence[InitializationAction] = (),
        on_activation: Sequence[LifecycleAction] = (),
        on_deactivation: Sequence[LifecycleAction] = (),
    ) -> Self:
        """Bind ``service`` to an implementation type constructed from its plan.

        Args:
            service: Requested service type; generic origins and open aliases
                such as ``Repo[T]`` also serve closed requests.
            implementation: Concrete type to construct; defaults to ``service``.
            name: Binding name matched by ``Named`` and ``name=`` lookups.
            scope: Scope callback; ``None`` keeps instances transient.
            when: Condition over the request.
            metadata: Extra metadata visible to request constraints.
            parameters: Parameters applied to every resolution of the binding.
            on_initialization: Callbacks ``(context, instance) -> instance``.
            on_activation: Callbacks ``(context, instance)`` run on activation.
            on_deactivation: Callbacks ``(context, instance)`` run on deactivation.

        Raises:
            DIKernelInvalidArgumentError: If ``service`` is ``None``.

        """
        target = BindingTarget.TYPE
        if implementation is None or implementation is service:
            implementation = service
            target = BindingTarget.SELF
        return self._add(
            service,
            StandardProvider(implementation),
            target=target,
            name=name,
            scope=scope,
            when=when,
            metadata=metadata,
            parameters=parameters,
            on_initialization=on_initialization,
            on_activation=on_activation,
            on_deactivation=on_deactivation,
        )

    def add_self(self, implementation: Any, **options: Any) -> Self:
        """Bind a concrete type to itself; accepts the options of ``add_type``."""
        return self.add_type(implementation, implementation, **options)

    def add_constant(
        self,
        service: Any,
        value: Any,
        *,
        name: str | None = None,
        scope: ScopeCallback | None = singleton_scope,
        **options: Any,
    ) -> Self:
        """Bind ``service`` to a pre-built value.

        Constants live in singleton scope by default, so they are deactivated
        once the kernel closes.
        """
        return self._add(
            service,
            ConstantProvider(value),
            target=BindingTarget.CONSTANT,
            name=name,
            scope=scope,
            **options,
        )

    def add_method(
        self,
        service: Any,
        factory: Callable[[Context], Any],
        **options: Any,
    ) -> Self:
        """Bind ``service`` to a factory called with the resolving context."""
        return self._add(
            service,
            CallbackProvider(factory),
            target=BindingTarget.METHOD,
            **options,
        )

    def add_provider(self, service: Any, provider: Any, **options: Any) -> Self:
        """Bind ``service`` to a provider.

        Args:
            service: Requested service type.
            provider: A ``Provider`` instance, or a provider type that is
                itself resolved from the kernel on every creation.
            **options: Options of ``add_type``.

        """
        if isinstance(provider, type):
            provider = ProviderCallbackProvider(provider)
        return self._add(service, provider, target=BindingTarget.PROVIDER, **options)

    def add_plan(self, plan: Plan) -> Self:
        """Register a pre-built plan instead of reflecting over ``plan.type``."""
        self._ensure_not_built()
        self._plans.append(plan)
        return self

    def build(self) -> Kernel:
        """Freeze the collected configuration into a kernel.

        Raises:
            DIKernelBuildError: If the builder has already been built.

        """
        self._ensure_not_built()
        self._built = True
        settings = self._settings or KernelSettings()
        lock_mode = settings.lock_mode

        planner = Planner(self._plan_builder or ReflectionPlanBuilder(), lock_mode=lock_mode)
        for plan in self._plans:
            planner.add(plan)

        pipeline = Pipeline(
            initialization_strategies=_or_default(
                self._initialization_strategies,
                default_initialization_strategies,
            ),
            activation_strategies=_or_default(self._activation_strategies, default_activation_strategies),
            deactivation_strategies=_or_default(
                self._deactivation_strategies,
                default_deactivation_strategies,
            ),
        )
        constructor_selector = self._constructor_selector
        if constructor_selector is None:
            if settings.constructor_selection == "unique":
                constructor_selector = UniqueConstructorSelector()
            else:
                constructor_selector = BestMatchConstructorSelector()

        kernel = Kernel(
            bindings={service: tuple(bindings) for service, bindings in self._bindings.items()},
            settings=settings,
            resolvers=self._resolvers if self._resolvers is not None else default_resolvers(lock_mode),
            precedence_comparer=self._precedence_comparer or BindingPrecedenceComparer(),
            planner=planner,
            pipeline=pipeline,
            constructor_selector=constructor_selector,
        )
        logger.debug("Built kernel with bindings for %d service(s)", len(self._bindings))
        return kernel

    def _add(  # noqa: PLR0913
        self,
        service: Any,
        provider: Provider,
        *,
        target: BindingTarget,
        name: str | None = None,
        scope: ScopeCallback | None = None,
        when: Condition | None = None,
        metadata: Mapping[str, Any] | None = None,
        parameters: Sequence[Parameter] = (),
        on_initialization: Sequence[InitializationAction] = (),
        on_activation: Sequence[LifecycleAction] = (),
        on_deactivation: Sequence[LifecycleAction] = (),
    ) -> Self:
        if service is None:
            msg = "Bindings require a service; got None."
            raise DIKernelInvalidArgumentError(msg)
        return self.add_binding(
            Binding(
                service=service,
                provider=provider,
                target=target,
                scope_callback=scope,
                condition=when,
                metadata=BindingMetadata(name=name, data=metadata or {}),
                parameters=tuple(parameters),
                initialization_actions=tuple(on_initialization),
                activation_actions=tuple(on_activation),
                deactivation_actions=tuple(on_deactivation),
            ),
        )

    def _ensure_not_built(self) -> None:
        if self._built:
            msg = "The kernel has already been built; create a new KernelBuilder to change bindings."
            raise DIKernelBuildError(msg)


class Kernel:
    """Resolve services from a frozen binding table and manage instance lifetimes.

    Kernels are created by ``KernelBuilder.build``. They are safe to use from
    several threads; closing a kernel deactivates every cached instance.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        bindings: Mapping[Any, tuple[Binding, ...]],
        settings: KernelSettings,
        resolvers: Sequence[MissingBindingResolver],
        precedence_comparer: BindingPrecedenceComparer,
        planner: Planner,
        pipeline: Pipeline,
        constructor_selector: ConstructorSelector,
    ) -> None:
        self._bindings = dict(bindings)
        self._resolvers = tuple(resolvers)
        self._precedence_comparer = precedence_comparer
        self.settings = settings
        self.planner = planner
        self.pipeline = pipeline
        self.constructor_selector = constructor_selector
        self.cache = Cache(pipeline, lock_mode=settings.lock_mode)
        self._pruner: CachePruner | None = None
        self._closed = False
        if settings.cache_pruning_interval is not None:
            self._pruner = CachePruner(self.cache, settings.cache_pruning_interval)
            self._pruner.start()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def create_request(  # noqa: PLR0913
        self,
        service: Any,
        *,
        constraint: Constraint | None = None,
        parameters: Sequence[Parameter] = (),
        is_optional: bool = False,
        is_unique: bool = True,
        scope_callback: ScopeCallback | None = None,
    ) -> Request:
        """Create a top-level request for ``service``."""
        return Request(
            service,
            constraint=constraint,
            parameters=parameters,
            is_optional=is_optional,
            is_unique=is_unique,
            scope_callback=scope_callback,
        )

    def get_bindings(self, service: Any) -> tuple[Binding, ...]:
        """Return the explicit bindings of ``service`` in registration order."""
        return self._bindings.get(service, ())

    def can_resolve(self, request: Request, *, ignore_implicit_bindings: bool = False) -> bool:
        """Return whether at least one binding survives filtering for ``request``.

        Args:
            request: Request to check.
            ignore_implicit_bindings: Disregard bindings synthesized by the
                missing-binding resolvers.

        """
        self._ensure_open()
        return bool(self._candidates(request, ignore_implicit_bindings=ignore_implicit_bindings))

    def resolve(self, request: Request) -> Iterator[Any]:
        """Resolve every instance satisfying ``request``.

        Binding selection happens immediately, so unresolved and ambiguous
        requests fail here. Instances are created lazily as the returned
        iterator advances.

        Raises:
            DIKernelUnresolvedBindingError: If nothing matches a non-optional
                request.
            DIKernelAmbiguousBindingError: If a unique request matches several
                top-precedence bindings.

        """
        self._ensure_open()
        return self._instances(request, self._select(request))

    def resolve_single(self, request: Request) -> Any:
        """Resolve one instance for ``request``; ``None`` when optional and unresolved."""
        return next(self.resolve(request), None)

    @overload
    def get(self, service: type[T], *parameters: Parameter, name: str | None = None) -> T: ...

    @overload
    def get(self, service: Any, *parameters: Parameter, name: str | None = None) -> Any: ...

    def get(self, service: Any, *parameters: Parameter, name: str | None = None) -> Any:
        """Resolve exactly one instance of ``service``.

        Args:
            service: Requested service type.
            *parameters: Value overrides for this resolution.
            name: Only consider bindings with this name.

        Examples:
            .. code-block:: python

                samurai = kernel.get(Samurai, ConstructorArgument("rank", 3))

        """
        request = self.create_request(service, constraint=name_constraint(name), parameters=parameters)
        return self.resolve_single(request)

    def try_get(self, service: Any, *parameters: Parameter, name: str | None = None) -> Any:
        """Resolve one instance of ``service``, or return ``None`` when nothing matches."""
        request = self.create_request(
            service,
            constraint=name_constraint(name),
            parameters=parameters,
            is_optional=True,
        )
        return self.resolve_single(request)

    def get_all(self, service: Any, *parameters: Parameter, name: str | None = None) -> list[Any]:
        """Resolve every top-precedence instance of ``service``."""
        request = self.create_request(
            service,
            constraint=name_constraint(name),
            parameters=parameters,
            is_optional=True,
            is_unique=False,
        )
        return list(self.resolve(request))

    def inject(self, instance: Any, *parameters: Parameter) -> None:
        """Run initialization and activation over an instance created elsewhere."""
        self._ensure_open()
        if instance is None:
            msg = "inject() requires an instance; got None."
            raise DIKernelInvalidArgumentError(msg)
        service = type(instance)
        binding = Binding(
            service=service,
            provider=ConstantProvider(instance),
            target=BindingTarget.SELF,
            is_implicit=True,
        )
        context = Context(
            self,
            self.create_request(service, parameters=parameters),
            binding,
            plan=self.planner.get_plan(service),
        )
        with self.pipeline.activation_cache.pass_():
            reference = InstanceReference(self.pipeline.initialize(context, instance))
            self.pipeline.activate(context, reference)

    def release(self, instance: Any) -> bool:
        """Deactivate and forget a cached instance; ``False`` if it was not cached."""
        return self.cache.release(instance)

    def clear(self, scope: Any = None) -> int:
        """Deactivate and forget the instances of ``scope``, or of every scope."""
        return self.cache.clear(scope)

    def prune(self) -> int:
        """Deactivate and forget instances whose scope is no longer alive."""
        return self.cache.prune()

    def begin_block(self, name: str | None = None) -> ActivationBlock:
        """Return a block whose resolutions share the block as their scope."""
        self._ensure_open()
        return ActivationBlock(self, name)

    def close(self) -> None:
        """Stop the pruner and deactivate every cached instance. Closing twice is a no-op.

        Resolutions still running when the kernel closes raise
        ``DIKernelClosedError`` once they reach the scope cache, so nothing
        they create outlives the kernel.
        """
        if self._closed:
            return
        if self._pruner is not None:
            self._pruner.stop()
        self._closed = True
        cleared = self.cache.close()
        logger.debug("Closed kernel, deactivated %d instance(s)", cleared)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _instances(self, request: Request, bindings: list[Binding]) -> Iterator[Any]:
        for binding in bindings:
            with self.pipeline.activation_cache.pass_():
                instance = Context(self, request, binding).resolve()
            yield instance

    def _select(self, request: Request) -> list[Binding]:
        candidates = self._candidates(request)
        selected = self._precedence_comparer.select(candidates, request)
        if not selected:
            if request.is_optional:
                return []
            msg = (
                f"No binding matches {request.format_path()}. Add a binding for "
                f"{request.service!r}, relax its condition or constraint, or mark the target optional."
            )
            raise DIKernelUnresolvedBindingError(msg)
        if request.is_unique and len(selected) > 1:
            names = ", ".join(repr(binding) for binding in selected)
            msg = (
                f"{len(selected)} bindings of equal precedence match {request.format_path()}: "
                f"{names}. Name them and request one by name, or add conditions."
            )
            raise DIKernelAmbiguousBindingError(msg)
        return selected

    def _candidates(self, request: Request, *, ignore_implicit_bindings: bool = False) -> list[Binding]:
        explicit = [binding for binding in self.get_bindings(request.service) if _accepts(binding, request)]
        if explicit or ignore_implicit_bindings:
            return explicit
        for resolver in self._resolvers:
            resolved = resolver.resolve(self._bindings, request)
            if resolved:
                return [binding for binding in resolved if _accepts(binding, request)]
        return []

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "The kernel is closed."
            raise DIKernelClosedError(msg)


def _accepts(binding: Binding, request: Request) -> bool:
    if request.constraint is not None and not request.constraint(binding.metadata):
        return False
    return binding.matches(request)


def _or_default(values: Sequence[Any] | None, factory: Callable[[], list[Any]]) -> list[Any]:
    return factory() if values is None else list(values)


__all__ = ["Kernel", "KernelBuilder"]
