from dikernel.bindings.binding import Binding, BindingMetadata, BindingTarget
from dikernel.bindings.precedence import BindingPrecedenceComparer
from dikernel.bindings.resolvers import (
    DefaultValueBindingResolver,
    MissingBindingResolver,
    OpenGenericBindingResolver,
    SelfBindingResolver,
)

__all__ = [
    "Binding",
    "BindingMetadata",
    "BindingPrecedenceComparer",
    "BindingTarget",
    "DefaultValueBindingResolver",
    "MissingBindingResolver",
    "OpenGenericBindingResolver",
    "SelfBindingResolver",
]
