from keywire.container import Container
from keywire.container_context import ContainerContext, container_context
from keywire.exceptions import (
    KeyWireContainerNotSetError,
    KeyWireError,
    KeyWireInstantiateError,
    KeyWireIntrospectionError,
    KeyWireInvalidArgumentError,
    KeyWireUnknownIdentifierError,
    ParameterContext,
)
from keywire.introspection import (
    CallableDescription,
    CallableKind,
    ClassDescription,
    ParameterDescriptor,
    ReflectionTypeIntrospector,
    TypeIntrospector,
)
from keywire.lock_mode import LockMode
from keywire.targets import (
    BoundMethodTarget,
    CallTarget,
    ClassMethodTarget,
    FunctionTarget,
    NamedFunctionTarget,
    QualifiedMethodTarget,
)

__all__ = [
    "BoundMethodTarget",
    "CallTarget",
    "CallableDescription",
    "CallableKind",
    "ClassDescription",
    "ClassMethodTarget",
    "Container",
    "ContainerContext",
    "FunctionTarget",
    "KeyWireContainerNotSetError",
    "KeyWireError",
    "KeyWireInstantiateError",
    "KeyWireIntrospectionError",
    "KeyWireInvalidArgumentError",
    "KeyWireUnknownIdentifierError",
    "LockMode",
    "NamedFunctionTarget",
    "ParameterContext",
    "ParameterDescriptor",
    "QualifiedMethodTarget",
    "ReflectionTypeIntrospector",
    "TypeIntrospector",
    "container_context",
]
