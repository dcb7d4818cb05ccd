"""
Elementwise arithmetic operations.

Binary operations broadcast their operands (``*_strict`` variants require
identical shapes). Operand dtypes must match; `div` always produces
float32. Integer NaN sentinels propagate through int32 arithmetic.
"""

from __future__ import annotations

from ...domain._kernel import Kernel
from ..tensor._tensor import Tensor
from ._common import TensorLike, binary, unary


def add(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.ADD, a, b)


def sub(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.SUB, a, b)


def mul(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.MUL, a, b)


def div(a: TensorLike, b: TensorLike) -> Tensor:
    """Elementwise true division; the result is float32."""
    return binary(Kernel.DIV, a, b)


def add_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.ADD, a, b, strict=True)


def sub_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.SUB, a, b, strict=True)


def mul_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.MUL, a, b, strict=True)


def div_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.DIV, a, b, strict=True)


def maximum(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.MAXIMUM, a, b)


def minimum(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.MINIMUM, a, b)


def pow(a: TensorLike, b: TensorLike) -> Tensor:
    """
    Elementwise ``a ** b``.

    For int32 operands the power is computed in float64 and truncated;
    non-finite results (negative exponents of 0) become 0.
    """
    return binary(Kernel.POW, a, b)


def neg(x: TensorLike) -> Tensor:
    return unary(Kernel.NEG, x)

