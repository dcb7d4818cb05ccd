"""
Gradients of the shape and dtype kernels.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...domain._kernel import Kernel
from ..ops import reshape, transpose
from ..tensor._tensor import Tensor
from ._registry import register_gradient
from ._utils import sum_to_shape

if TYPE_CHECKING:
    from ..engine._tape import TapeNode


@register_gradient(Kernel.CAST)
def _cast_grad(dy: Tensor, node: "TapeNode"):
    # only float32 -> float32 casts lie on a differentiable path
    return {"x": lambda: dy}


@register_gradient(Kernel.RESHAPE)
def _reshape_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    return {"x": lambda: reshape(dy, x.shape)}


@register_gradient(Kernel.TRANSPOSE)
def _transpose_grad(dy: Tensor, node: "TapeNode"):
    perm = node.attrs["perm"]
    inverse = [0] * len(perm)
    for i, p in enumerate(perm):
        inverse[p] = i
    return {"x": lambda: transpose(dy, inverse)}


@register_gradient(Kernel.BROADCAST_TO)
def _broadcast_to_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    return {"x": lambda: sum_to_shape(dy, x.shape)}
