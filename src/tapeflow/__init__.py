"""
tapeflow: a tensor engine with reverse-mode autodiff, pluggable backends
and scope-based memory management.

Typical use goes through the module-level API, which is bound to a
process-wide default engine:

    >>> import tapeflow as tf
    >>> x = tf.tensor([1.0, 2.0, 3.0])
    >>> y, (dx,) = tf.gradients(lambda: tf.sum(x * x), [x])
    >>> dx.to_numpy()
    array([2., 4., 6.], dtype=float32)
"""

from .domain import (
    NAN_BOOL,
    NAN_INT32,
    AlreadyDisposedError,
    BackendMismatchError,
    BackendNotFoundError,
    BackendUnavailableError,
    DType,
    GradientError,
    GradientShapeMismatchError,
    Kernel,
    KernelSpec,
    NaNDetectedError,
    NoGradientRegisteredError,
    NonDifferentiableTypeError,
    NoTapeActiveError,
    ShapeMismatchError,
    TapeflowError,
    TypeMismatchError,
    UnimplementedKernelError,
)
from .infrastructure import (
    GRADIENTS,
    ArrayBackend,
    CPUBackend,
    CudaBackend,
    Engine,
    EngineConfig,
    GradientRegistry,
    GradientTape,
    MemoryInfo,
    Tensor,
    TimingInfo,
    Variable,
    get_engine,
    register_gradient,
    set_engine,
)
from .infrastructure._api import (
    backend_name,
    custom_grad,
    dispose,
    end_scope,
    find_backend,
    get_backend,
    grad,
    gradients,
    grads,
    keep,
    memory,
    no_grad,
    record,
    register_backend,
    registered_backends,
    remove_backend,
    reset,
    scope,
    scope_guard,
    set_backend,
    start_scope,
    tidy,
    time,
    value_and_grad,
    value_and_grads,
    variable_grads,
)
from .infrastructure.ops import *  # noqa: F401,F403
from .infrastructure.ops import __all__ as _ops_all

__version__ = "0.1.0"

float32 = DType.FLOAT32
int32 = DType.INT32
bool_ = DType.BOOL

__all__ = [
    "NAN_BOOL",
    "NAN_INT32",
    "DType",
    "Kernel",
    "KernelSpec",
    "float32",
    "int32",
    "bool_",
    # errors
    "AlreadyDisposedError",
    "BackendMismatchError",
    "BackendNotFoundError",
    "BackendUnavailableError",
    "GradientError",
    "GradientShapeMismatchError",
    "NaNDetectedError",
    "NoGradientRegisteredError",
    "NonDifferentiableTypeError",
    "NoTapeActiveError",
    "ShapeMismatchError",
    "TapeflowError",
    "TypeMismatchError",
    "UnimplementedKernelError",
    # engine
    "GRADIENTS",
    "ArrayBackend",
    "CPUBackend",
    "CudaBackend",
    "Engine",
    "EngineConfig",
    "GradientRegistry",
    "GradientTape",
    "MemoryInfo",
    "Tensor",
    "TimingInfo",
    "Variable",
    "get_engine",
    "register_gradient",
    "set_engine",
    # default-engine API
    "backend_name",
    "custom_grad",
    "dispose",
    "end_scope",
    "find_backend",
    "get_backend",
    "grad",
    "gradients",
    "grads",
    "keep",
    "memory",
    "no_grad",
    "record",
    "register_backend",
    "registered_backends",
    "remove_backend",
    "reset",
    "scope",
    "scope_guard",
    "set_backend",
    "start_scope",
    "tidy",
    "time",
    "value_and_grad",
    "value_and_grads",
    "variable_grads",
    *_ops_all,
]
