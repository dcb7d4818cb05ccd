"""
Elementwise comparison operations.

All comparisons return ``bool`` tensors and are never differentiated. The
broadcasting forms follow NumPy broadcasting; the ``*_strict`` forms require
identical shapes and raise `ShapeMismatchError` before dispatching.

Operand dtypes must match. If either operand holds NaN at a position (IEEE
NaN, or the int32 / bool NaN sentinels) the result there is the bool NaN
sentinel, so ``not_equal`` is the complement of ``equal`` everywhere except
at NaN positions.
"""

from __future__ import annotations

from ...domain._kernel import Kernel
from ..tensor._tensor import Tensor
from ._common import TensorLike, binary


def equal(a: TensorLike, b: TensorLike) -> Tensor:
    """Elementwise ``a == b`` with broadcasting."""
    return binary(Kernel.EQUAL, a, b)


def not_equal(a: TensorLike, b: TensorLike) -> Tensor:
    """Elementwise ``a != b`` with broadcasting."""
    return binary(Kernel.NOT_EQUAL, a, b)


def less(a: TensorLike, b: TensorLike) -> Tensor:
    """
    Elementwise ``a < b`` with broadcasting.

    Examples
    --------
    >>> a = tensor([[1.0], [2.0]])
    >>> b = tensor([[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])
    >>> less(a, b).to_numpy()
    array([[0, 1, 1],
           [0, 0, 1]], dtype=uint8)
    """
    return binary(Kernel.LESS, a, b)


def less_equal(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.LESS_EQUAL, a, b)


def greater(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.GREATER, a, b)


def greater_equal(a: TensorLike, b: TensorLike) -> Tensor:
    return binary(Kernel.GREATER_EQUAL, a, b)


def equal_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.EQUAL, a, b, strict=True)


def not_equal_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.NOT_EQUAL, a, b, strict=True)


def less_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.LESS, a, b, strict=True)


def less_equal_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.LESS_EQUAL, a, b, strict=True)


def greater_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.GREATER, a, b, strict=True)


def greater_equal_strict(a: Tensor, b: Tensor) -> Tensor:
    return binary(Kernel.GREATER_EQUAL, a, b, strict=True)
