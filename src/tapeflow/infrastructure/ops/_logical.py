"""
Logical operations on bool tensors and `where`.

Logical kernels accept bool tensors only. The bool NaN sentinel in either
operand propagates to the output.
"""

from __future__ import annotations

from ...domain._kernel import Kernel
from ..tensor._tensor import Tensor
from ._common import TensorLike, as_tensor, binary, resolve_engine, unary


def logical_and(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.LOGICAL_AND, a, b)


def logical_or(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.LOGICAL_OR, a, b)


def logical_xor(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.LOGICAL_XOR, a, b)


def logical_not(x: TensorLike) -> Tensor:
    return unary(Kernel.LOGICAL_NOT, x)


def where(condition: TensorLike, a: TensorLike, b: TensorLike) -> Tensor:
    """
    Select from `a` where `condition` is true and from `b` elsewhere.

    The three operands broadcast together. `a` and `b` must share a dtype,
    which is also the output dtype. Where the condition is NaN the output
    holds the output dtype's NaN.
    """
    eng = resolve_engine(condition, a, b)
    like = a if isinstance(a, Tensor) else b if isinstance(b, Tensor) else None
    tc = as_tensor(condition, eng)
    ta = as_tensor(a, eng, like)
    tb = as_tensor(b, eng, like)
    return eng.execute_kernel(Kernel.WHERE, {"condition": tc, "a": ta, "b": tb})
