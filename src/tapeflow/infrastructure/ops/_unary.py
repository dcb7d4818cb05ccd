"""
Elementwise unary operations.

`abs`, `square` and `relu` accept int32 and float32; the transcendental
functions (`exp`, `log`, `sqrt`, `sigmoid`, `tanh`) require float32.
"""

from __future__ import annotations

from ...domain._kernel import Kernel
from ..tensor._tensor import Tensor
from ._common import TensorLike, unary


def abs(x: TensorLike) -> Tensor:
    return unary(Kernel.ABS, x)


def exp(x: TensorLike) -> Tensor:
    return unary(Kernel.EXP, x)


def log(x: TensorLike) -> Tensor:
    """Natural logarithm; non-positive inputs give -inf / NaN."""
    return unary(Kernel.LOG, x)


def sqrt(x: TensorLike) -> Tensor:
    return unary(Kernel.SQRT, x)


def square(x: TensorLike) -> Tensor:
    return unary(Kernel.SQUARE, x)


def relu(x: TensorLike) -> Tensor:
    """``max(x, 0)`` elementwise; NaN stays NaN."""
    return unary(Kernel.RELU, x)


def sigmoid(x: TensorLike) -> Tensor:
    return unary(Kernel.SIGMOID, x)


def tanh(x: TensorLike) -> Tensor:
    return unary(Kernel.TANH, x)
