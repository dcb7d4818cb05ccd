"""
Helpers shared by gradient functions.
"""

from __future__ import annotations

from typing import Sequence

from ...domain.utils import get_reduction_axes
from ..ops import reshape, sum
from ..tensor._tensor import Tensor


def sum_to_shape(g: Tensor, shape: Sequence[int]) -> Tensor:
    """
    Sum a broadcast gradient back to an operand's shape.

    Parameters
    ----------
    g : Tensor
        Gradient with the broadcast output shape.
    shape : Sequence[int]
        Shape of the operand the gradient belongs to.

    Returns
    -------
    Tensor
        Gradient of shape `shape`. `g` itself is returned when no reduction
        is needed.
    """
    shape = tuple(shape)
    axes = get_reduction_axes(shape, g.shape)
    if axes:
        g = sum(g, axis=axes)
    if tuple(g.shape) != shape:
        g = reshape(g, shape)
    return g
