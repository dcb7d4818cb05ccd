"""
Arithmetic mixin exposing elementwise operators on tensors.

Each operator forwards to the matching operation wrapper in
`tapeflow.infrastructure.ops`, so operator sugar and the functional API share
one implementation (validation, dispatch, tape recording). Python scalars on
either side are lifted to scalar tensors of a compatible dtype.

Binary operators broadcast. Use the ``*_strict`` functions in
`tapeflow.infrastructure.ops` to require identical shapes.
"""

from __future__ import annotations

from abc import ABC
from typing import Union

from ....domain._tensor import ITensor, Number

Operand = Union[ITensor, Number]


class TensorMixinArithmetic(ABC):
    """Elementwise arithmetic operators (``+ - * / ** @`` and unary minus)."""

    def __add__(self, other: Operand) -> ITensor:
        from ...ops import add

        return add(self, other)

    def __radd__(self, other: Number) -> ITensor:
        from ...ops import add

        return add(other, self)

    def __sub__(self, other: Operand) -> ITensor:
        from ...ops import sub

        return sub(self, other)

    def __rsub__(self, other: Number) -> ITensor:
        from ...ops import sub

        return sub(other, self)

    def __mul__(self, other: Operand) -> ITensor:
        from ...ops import mul

        return mul(self, other)

    def __rmul__(self, other: Number) -> ITensor:
        from ...ops import mul

        return mul(other, self)

    def __truediv__(self, other: Operand) -> ITensor:
        """
        Elementwise true division.

        The result is always float32, also for int32 operands.
        """
        from ...ops import div

        return div(self, other)

    def __rtruediv__(self, other: Number) -> ITensor:
        from ...ops import div

        return div(other, self)

    def __pow__(self, other: Operand) -> ITensor:
        from ...ops import pow

        return pow(self, other)

    def __rpow__(self, other: Number) -> ITensor:
        from ...ops import pow

        return pow(other, self)

    def __neg__(self) -> ITensor:
        from ...ops import neg

        return neg(self)

    def __matmul__(self, other: ITensor) -> ITensor:
        from ...ops import matmul

        return matmul(self, other)

    def maximum(self, other: Operand) -> ITensor:
        from ...ops import maximum

        return maximum(self, other)

    def minimum(self, other: Operand) -> ITensor:
        from ...ops import minimum

        return minimum(self, other)
