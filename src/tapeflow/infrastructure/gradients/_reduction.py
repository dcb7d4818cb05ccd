"""
Gradients of the reduction kernels.

The upstream gradient has the reduced shape. It is first reshaped to the
``keepdims=True`` shape so that it broadcasts against the input, then
expanded back to the input shape.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...domain._kernel import Kernel
from ...domain.utils import reduced_shape, size_from_shape
from ..ops import broadcast_to, equal, reshape, where
from ..tensor._tensor import Tensor
from ._registry import register_gradient

if TYPE_CHECKING:
    from ..engine._tape import TapeNode


def _kept_shape(node: "TapeNode") -> tuple[int, ...]:
    return reduced_shape(node.inputs["x"].shape, node.attrs["axes"], True)


@register_gradient(Kernel.SUM)
def _sum_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    return {"x": lambda: broadcast_to(reshape(dy, _kept_shape(node)), x.shape)}


@register_gradient(Kernel.MEAN)
def _mean_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    count = size_from_shape(x.shape[ax] for ax in node.attrs["axes"])

    def grad_x() -> Tensor:
        g = broadcast_to(reshape(dy, _kept_shape(node)), x.shape)
        return g / float(max(count, 1))

    return {"x": grad_x}


def _extremum_grad(dy: Tensor, node: "TapeNode"):
    # every position equal to the extremum receives the full gradient
    x, y = node.inputs["x"], node.output

    def grad_x() -> Tensor:
        kept = _kept_shape(node)
        mask = equal(x, reshape(y, kept))
        return where(mask, reshape(dy, kept), 0.0)

    return {"x": grad_x}


register_gradient(Kernel.MAX)(_extremum_grad)
register_gradient(Kernel.MIN)(_extremum_grad)
