"""
Comparison mixin defining elementwise Tensor comparisons.

Comparisons are non-differentiable and always produce ``bool`` tensors. A
NaN in either operand (IEEE NaN for float32, the int32 / bool sentinels
otherwise) yields the bool NaN sentinel at that position rather than
``True`` or ``False``.

Python's ``<``, ``<=``, ``>`` and ``>=`` map to the broadcasting comparisons.
``==`` and ``!=`` are deliberately left to Python's identity semantics so
tensors remain hashable; use `equal` / `not_equal` for elementwise equality.
"""

from __future__ import annotations

from abc import ABC
from typing import Union

from ....domain._tensor import ITensor, Number

Operand = Union[ITensor, Number]


class TensorMixinComparison(ABC):
    """Broadcasting and strict elementwise comparisons."""

    def equal(self, other: Operand) -> ITensor:
        from ...ops import equal

        return equal(self, other)

    def not_equal(self, other: Operand) -> ITensor:
        from ...ops import not_equal

        return not_equal(self, other)

    def less(self, other: Operand) -> ITensor:
        from ...ops import less

        return less(self, other)

    def less_equal(self, other: Operand) -> ITensor:
        from ...ops import less_equal

        return less_equal(self, other)

    def greater(self, other: Operand) -> ITensor:
        from ...ops import greater

        return greater(self, other)

    def greater_equal(self, other: Operand) -> ITensor:
        from ...ops import greater_equal

        return greater_equal(self, other)

    # ----------------------------
    # strict variants (no broadcasting)
    # ----------------------------
    def equal_strict(self, other: ITensor) -> ITensor:
        from ...ops import equal_strict

        return equal_strict(self, other)

    def not_equal_strict(self, other: ITensor) -> ITensor:
        from ...ops import not_equal_strict

        return not_equal_strict(self, other)

    def less_strict(self, other: ITensor) -> ITensor:
        from ...ops import less_strict

        return less_strict(self, other)

    def less_equal_strict(self, other: ITensor) -> ITensor:
        from ...ops import less_equal_strict

        return less_equal_strict(self, other)

    def greater_strict(self, other: ITensor) -> ITensor:
        from ...ops import greater_strict

        return greater_strict(self, other)

    def greater_equal_strict(self, other: ITensor) -> ITensor:
        from ...ops import greater_equal_strict

        return greater_equal_strict(self, other)

    # ----------------------------
    # Python operators
    # ----------------------------
    def __lt__(self, other: Operand) -> ITensor:
        return self.less(other)

    def __le__(self, other: Operand) -> ITensor:
        return self.less_equal(other)

    def __gt__(self, other: Operand) -> ITensor:
        return self.greater(other)

    def __ge__(self, other: Operand) -> ITensor:
        return self.greater_equal(other)
