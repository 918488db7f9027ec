class DIKernelError(Exception):
    """Represent a base class for all dikernel-specific failures.

    Catch this type when you want to handle any dikernel error path without
    matching each concrete exception class individually.
    """


class DIKernelInvalidArgumentError(DIKernelError, ValueError):
    """Signal an argument contract violation at the API boundary.

    Raised eagerly, before any resolution work starts, for example when a
    required argument is ``None`` or a parameter name is empty.
    """


class DIKernelBuildError(DIKernelError):
    """Signal a change to a ``KernelBuilder`` that has already been built.

    Bindings, resolvers and strategies are frozen by ``KernelBuilder.build``.
    Create a new builder to produce a differently configured kernel.
    """


class DIKernelClosedError(DIKernelError):
    """Signal use of a ``Kernel`` after ``Kernel.close`` was called."""


class DIKernelInvalidGenericTypeArgumentError(DIKernelError):
    """Signal invalid closed-generic arguments for an open binding.

    Raised while reifying open-generic bindings when a closed service violates
    TypeVar bounds or constraints.
    """


class DIKernelActivationError(DIKernelError):
    """Represent a failure of one resolution attempt.

    Every subclass propagates synchronously to the caller of the top-level
    operation (``resolve``, ``get``, ``inject``...). There is no retry and no
    partial result.
    """


class DIKernelUnresolvedBindingError(DIKernelActivationError):
    """Signal that no binding survives filtering for a non-optional request.

    Typical fixes include adding a binding for the service, relaxing a binding
    condition or constraint, or marking the injection target optional.
    """


class DIKernelAmbiguousBindingError(DIKernelActivationError):
    """Signal that two or more top-precedence bindings match a unique request.

    Typical fixes include naming the bindings and requesting one by name, or
    adding conditions so that only one binding matches.
    """


class DIKernelAmbiguousPropertyValueError(DIKernelActivationError):
    """Signal that more than one property value parameter targets one property."""


class DIKernelUnmatchedPropertyValueError(DIKernelActivationError):
    """Signal a property value parameter that applies to no injectable property."""


class DIKernelUnresolvedPropertyError(DIKernelActivationError):
    """Signal that an injectable property could not be resolved from bindings."""


class DIKernelConstructionError(DIKernelActivationError):
    """Signal a violated construction precondition.

    Raised for example when constructor arguments are supplied for a type whose
    selected constructor takes no arguments.
    """


class DIKernelNoConstructorsError(DIKernelConstructionError):
    """Signal that a plan declares no constructor candidates."""


class DIKernelAmbiguousConstructorError(DIKernelConstructionError):
    """Signal that constructor selection ended with more than one winner.

    Raised by unique selection when several candidates exist and by best-match
    selection when candidates tie at the top score.
    """


class DIKernelAmbiguousArgumentError(DIKernelConstructionError):
    """Signal that more than one explicit argument applies to the same target."""


class DIKernelNullInstanceError(DIKernelActivationError):
    """Signal that a provider or strategy produced ``None`` where nulls are disallowed.

    Enable ``KernelSettings.allow_null_injection`` to accept ``None`` values.
    """


class DIKernelCyclicDependencyError(DIKernelActivationError):
    """Signal a context ancestor chain that would construct a binding it is already constructing."""


class DIKernelResolutionDepthExceededError(DIKernelCyclicDependencyError):
    """Signal that nested resolution went deeper than ``max_resolution_depth``.

    With cyclic dependency detection disabled this is how an uncontrolled
    constructor cycle surfaces.
    """
