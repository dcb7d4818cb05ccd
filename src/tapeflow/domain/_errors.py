"""
Engine-level exceptions for tapeflow.

This module defines the complete error taxonomy raised by the execution
engine. Every error derives from `TapeflowError` so callers can catch the
whole family at once, and errors that describe a bad argument additionally
derive from the matching builtin (`ValueError`, `TypeError`, ...) so that
generic handlers keep working.

All of these errors are raised at the point of origin and propagate to the
caller. The engine never recovers silently: it does not guess a compatible
shape, cast a dtype, or skip a missing kernel.
"""

from __future__ import annotations

from typing import Optional, Sequence


class TapeflowError(RuntimeError):
    """Base class for every error raised by the tapeflow engine."""


class ShapeMismatchError(TapeflowError, ValueError):
    """
    Raised when operand shapes are incompatible.

    For broadcasting operations this means the shapes cannot be aligned under
    NumPy broadcasting rules. For "strict" operation variants any difference
    between the shapes triggers it.

    Attributes
    ----------
    shape_a : tuple[int, ...]
        Shape of the first operand.
    shape_b : tuple[int, ...]
        Shape of the second operand.
    """

    def __init__(
        self,
        shape_a: Sequence[int],
        shape_b: Sequence[int],
        message: Optional[str] = None,
    ) -> None:
        self.shape_a = tuple(int(d) for d in shape_a)
        self.shape_b = tuple(int(d) for d in shape_b)
        if message is None:
            message = (
                f"Operands could not be broadcast together with shapes "
                f"{list(self.shape_a)} and {list(self.shape_b)}."
            )
        super().__init__(message)


class TypeMismatchError(TapeflowError, TypeError):
    """
    Raised when operand dtypes disagree where equality is required.

    Attributes
    ----------
    dtype_a : str
        DType name of the first operand.
    dtype_b : str
        DType name of the second operand.
    """

    def __init__(self, dtype_a: str, dtype_b: str, message: Optional[str] = None) -> None:
        self.dtype_a = str(dtype_a)
        self.dtype_b = str(dtype_b)
        if message is None:
            message = (
                f"The dtypes of the operands must match, "
                f"got '{self.dtype_a}' and '{self.dtype_b}'."
            )
        super().__init__(message)


class UnimplementedKernelError(TapeflowError, NotImplementedError):
    """
    Raised when the active backend does not implement a kernel.

    Attributes
    ----------
    kernel : str
        Name of the missing kernel.
    backend : str
        Name of the backend that lacks it.
    """

    def __init__(self, kernel: str, backend: str) -> None:
        self.kernel = str(kernel)
        self.backend = str(backend)
        super().__init__(
            f"Kernel '{self.kernel}' is not implemented by backend '{self.backend}'."
        )


class NoGradientRegisteredError(TapeflowError):
    """
    Raised when backprop reaches a kernel that has no gradient function.

    Purely forward use of the kernel is unaffected; this error only fires
    when a gradient is requested through it.
    """

    def __init__(self, kernel: str) -> None:
        self.kernel = str(kernel)
        super().__init__(
            f"Cannot compute gradient: gradient function not found for '{self.kernel}'."
        )


class NonDifferentiableTypeError(TapeflowError, TypeError):
    """Raised when a gradient is requested for a non-float32 tensor."""

    def __init__(self, dtype: str, role: str = "x") -> None:
        self.dtype = str(dtype)
        self.role = role
        super().__init__(
            f"Gradients are only defined for float32 tensors; "
            f"'{role}' has dtype '{self.dtype}'."
        )


class GradientShapeMismatchError(TapeflowError, ValueError):
    """
    Raised when a gradient function returns a tensor of the wrong shape.

    This is a programming error in the gradient provider (custom or
    registered) and is surfaced immediately.
    """

    def __init__(
        self, kernel: str, slot: str, expected: Sequence[int], got: Sequence[int]
    ) -> None:
        self.kernel = str(kernel)
        self.slot = slot
        self.expected = tuple(expected)
        self.got = tuple(got)
        super().__init__(
            f"Error in gradient for op '{self.kernel}': the gradient of input "
            f"'{slot}' has shape {list(self.got)}, expected {list(self.expected)}."
        )


class GradientError(TapeflowError):
    """Raised when gradients cannot be computed for a structural reason."""


class NoTapeActiveError(TapeflowError):
    """Raised when gradient computation is requested outside a recording window."""

    def __init__(self, message: str = "No gradient tape is currently recording.") -> None:
        super().__init__(message)


class AlreadyDisposedError(TapeflowError):
    """
    Raised when a disposed tensor is used.

    Disposing a tensor twice is a no-op; reading a disposed tensor or feeding
    it to an operation raises this error.
    """

    def __init__(self, tensor_id: int) -> None:
        self.tensor_id = int(tensor_id)
        super().__init__(f"Tensor {self.tensor_id} is disposed.")


class BackendNotFoundError(TapeflowError, KeyError):
    """Raised when a backend name is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Backend '{name}' is not registered.")

    def __str__(self) -> str:
        return self.args[0]


class BackendUnavailableError(TapeflowError):
    """Raised when a backend factory cannot construct its backend here."""


class BackendMismatchError(TapeflowError):
    """Raised when tensors owned by different backends meet in one kernel."""

    def __init__(self, kernel: str, expected: str, got: str) -> None:
        self.kernel = str(kernel)
        self.expected = expected
        self.got = got
        super().__init__(
            f"Kernel '{self.kernel}' runs on backend '{expected}' but received "
            f"a tensor owned by backend '{got}'."
        )


class NaNDetectedError(TapeflowError, ArithmeticError):
    """Raised in debug mode when a kernel output contains NaN values."""

    def __init__(self, kernel: str, dtype: str) -> None:
        self.kernel = str(kernel)
        self.dtype = str(dtype)
        super().__init__(
            f"The result of '{self.kernel}' ({self.dtype}) contains NaN values."
        )
