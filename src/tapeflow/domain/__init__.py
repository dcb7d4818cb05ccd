"""
Domain layer: backend-agnostic contracts of the tapeflow engine.

Nothing in this package executes kernels or owns memory; it defines the
dtype model, the kernel catalog, the backend and tensor protocols, the error
taxonomy and the pure shape utilities.
"""

from ._dtype import NAN_BOOL, NAN_INT32, DType, as_dtype
from ._errors import (
    AlreadyDisposedError,
    BackendMismatchError,
    BackendNotFoundError,
    BackendUnavailableError,
    GradientError,
    GradientShapeMismatchError,
    NaNDetectedError,
    NoGradientRegisteredError,
    NonDifferentiableTypeError,
    NoTapeActiveError,
    ShapeMismatchError,
    TapeflowError,
    TypeMismatchError,
    UnimplementedKernelError,
)
from ._kernel import KERNEL_SPECS, Kernel, KernelSpec, OutputDType

__all__ = [
    "NAN_BOOL",
    "NAN_INT32",
    "DType",
    "as_dtype",
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
    "KERNEL_SPECS",
    "Kernel",
    "KernelSpec",
    "OutputDType",
]
