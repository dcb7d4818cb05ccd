"""
Reduction mixin defining the public Tensor reduction API.

The methods here are thin forwards to the reduction operations. ``axis``
accepts ``None`` (reduce everything), an int, or a sequence of ints;
negative axes count from the end.
"""

from __future__ import annotations

from abc import ABC
from typing import Optional, Sequence, Union

from ....domain._tensor import ITensor

Axis = Optional[Union[int, Sequence[int]]]


class TensorMixinReduction(ABC):
    """Sum / mean / max / min / argmax reductions."""

    def sum(self, axis: Axis = None, keepdims: bool = False) -> ITensor:
        """
        Sum elements over the given axes.

        Parameters
        ----------
        axis : int | Sequence[int] | None, optional
            Axes to reduce. ``None`` reduces all axes.
        keepdims : bool, optional
            Keep reduced axes with length 1.

        Returns
        -------
        ITensor
            Same dtype as the input.

        Notes
        -----
        Backward broadcasts the upstream gradient back over the reduced axes.
        """
        from ...ops import sum

        return sum(self, axis=axis, keepdims=keepdims)

    def mean(self, axis: Axis = None, keepdims: bool = False) -> ITensor:
        """Arithmetic mean over the given axes; the result is float32."""
        from ...ops import mean

        return mean(self, axis=axis, keepdims=keepdims)

    def max(self, axis: Axis = None, keepdims: bool = False) -> ITensor:
        """
        Maximum over the given axes.

        Backward routes the gradient to every position equal to the maximum,
        so tied maxima each receive the full upstream gradient.
        """
        from ...ops import max

        return max(self, axis=axis, keepdims=keepdims)

    def min(self, axis: Axis = None, keepdims: bool = False) -> ITensor:
        from ...ops import min

        return min(self, axis=axis, keepdims=keepdims)

    def argmax(self, axis: int = -1) -> ITensor:
        """Index of the maximum along one axis (int32, not differentiable)."""
        from ...ops import argmax

        return argmax(self, axis=axis)
