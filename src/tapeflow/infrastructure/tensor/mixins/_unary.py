"""
Unary mixin exposing elementwise math functions as tensor methods.
"""

from __future__ import annotations

from abc import ABC

from ....domain._tensor import ITensor


class TensorMixinUnary(ABC):
    """Elementwise unary functions."""

    def abs(self) -> ITensor:
        from ...ops import abs

        return abs(self)

    def exp(self) -> ITensor:
        from ...ops import exp

        return exp(self)

    def log(self) -> ITensor:
        from ...ops import log

        return log(self)

    def sqrt(self) -> ITensor:
        from ...ops import sqrt

        return sqrt(self)

    def square(self) -> ITensor:
        from ...ops import square

        return square(self)

    def relu(self) -> ITensor:
        from ...ops import relu

        return relu(self)

    def sigmoid(self) -> ITensor:
        from ...ops import sigmoid

        return sigmoid(self)

    def tanh(self) -> ITensor:
        from ...ops import tanh

        return tanh(self)

    def logical_not(self) -> ITensor:
        from ...ops import logical_not

        return logical_not(self)

    def __abs__(self) -> ITensor:
        return self.abs()
