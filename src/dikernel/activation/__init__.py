from dikernel.activation.caching import ActivationCache
from dikernel.activation.context import Context
from dikernel.activation.pipeline import Pipeline
from dikernel.activation.providers import (
    CallbackProvider,
    ConstantProvider,
    DefaultValueProvider,
    Provider,
    ProviderCallbackProvider,
    SettingsProvider,
    StandardProvider,
)
from dikernel.activation.reference import InstanceReference
from dikernel.activation.request import Request
from dikernel.activation.selection import (
    BestMatchConstructorSelector,
    ConstructorScorer,
    ConstructorSelector,
    UniqueConstructorSelector,
)
from dikernel.activation.strategies import (
    ActivationStrategy,
    BindingActionStrategy,
    Disposable,
    DisposableStrategy,
    Initializable,
    InitializableStrategy,
    InitializationStrategy,
    MethodInjectionStrategy,
    PropertyInjectionStrategy,
    Startable,
    StartableStrategy,
)

__all__ = [
    "ActivationCache",
    "ActivationStrategy",
    "BestMatchConstructorSelector",
    "BindingActionStrategy",
    "CallbackProvider",
    "ConstantProvider",
    "ConstructorScorer",
    "ConstructorSelector",
    "Context",
    "DefaultValueProvider",
    "Disposable",
    "DisposableStrategy",
    "Initializable",
    "InitializableStrategy",
    "InitializationStrategy",
    "InstanceReference",
    "MethodInjectionStrategy",
    "Pipeline",
    "PropertyInjectionStrategy",
    "Provider",
    "ProviderCallbackProvider",
    "Request",
    "SettingsProvider",
    "StandardProvider",
    "Startable",
    "StartableStrategy",
    "UniqueConstructorSelector",
]
