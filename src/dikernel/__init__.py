from dikernel.activation import Context, Request
from dikernel.bindings import Binding, BindingMetadata, BindingTarget
from dikernel.caching import Cache, CachePruner
from dikernel.exceptions import (
    DIKernelActivationError,
    DIKernelAmbiguousArgumentError,
    DIKernelAmbiguousBindingError,
    DIKernelAmbiguousConstructorError,
    DIKernelAmbiguousPropertyValueError,
    DIKernelBuildError,
    DIKernelClosedError,
    DIKernelConstructionError,
    DIKernelCyclicDependencyError,
    DIKernelError,
    DIKernelInvalidArgumentError,
    DIKernelInvalidGenericTypeArgumentError,
    DIKernelNoConstructorsError,
    DIKernelNullInstanceError,
    DIKernelResolutionDepthExceededError,
    DIKernelUnmatchedPropertyValueError,
    DIKernelUnresolvedBindingError,
    DIKernelUnresolvedPropertyError,
)
from dikernel.kernel import Kernel, KernelBuilder
from dikernel.lock_mode import LockMode
from dikernel.markers import ConstructorScore, Injected, Named, inject_constructor, inject_method
from dikernel.parameters import (
    ConstructorArgument,
    MethodArgument,
    Parameter,
    PropertyValue,
    TypeMatchingConstructorArgument,
    WeakPropertyValue,
)
from dikernel.scopes import (
    TRANSIENT,
    ActivationBlock,
    ScopeHandle,
    singleton_scope,
    thread_scope,
    transient_scope,
)
from dikernel.settings import KernelSettings

__all__ = [
    "TRANSIENT",
    "ActivationBlock",
    "Binding",
    "BindingMetadata",
    "BindingTarget",
    "Cache",
    "CachePruner",
    "ConstructorArgument",
    "ConstructorScore",
    "Context",
    "DIKernelActivationError",
    "DIKernelAmbiguousArgumentError",
    "DIKernelAmbiguousBindingError",
    "DIKernelAmbiguousConstructorError",
    "DIKernelAmbiguousPropertyValueError",
    "DIKernelBuildError",
    "DIKernelClosedError",
    "DIKernelConstructionError",
    "DIKernelCyclicDependencyError",
    "DIKernelError",
    "DIKernelInvalidArgumentError",
    "DIKernelInvalidGenericTypeArgumentError",
    "DIKernelNoConstructorsError",
    "DIKernelNullInstanceError",
    "DIKernelResolutionDepthExceededError",
    "DIKernelUnmatchedPropertyValueError",
    "DIKernelUnresolvedBindingError",
    "DIKernelUnresolvedPropertyError",
    "Injected",
    "Kernel",
    "KernelBuilder",
    "KernelSettings",
    "LockMode",
    "MethodArgument",
    "Named",
    "Parameter",
    "PropertyValue",
    "Request",
    "ScopeHandle",
    "TypeMatchingConstructorArgument",
    "WeakPropertyValue",
    "inject_constructor",
    "inject_method",
    "singleton_scope",
    "thread_scope",
    "transient_scope",
]
