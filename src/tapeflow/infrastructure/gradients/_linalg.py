"""
Gradients of matrix multiplication and 2D convolution.

For ``y = matmul(a, b, transpose_a, transpose_b)`` each case of the
transpose flags maps to a product of `dy` with the other operand:

==========  ==========  ==============================  ==============================
transpose_a transpose_b da                              db
==========  ==========  ==============================  ==============================
False       False       dy @ b^T                        a^T @ dy
False       True        dy @ b                          dy^T @ a
True        False       b @ dy^T                        a @ dy
True        True        b^T @ dy^T                      dy^T @ a^T
==========  ==========  ==============================  ==============================

Convolution gradients are delegated to the dedicated backprop kernels.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...domain._kernel import Kernel
from ..ops import conv2d_backprop_filter, conv2d_backprop_input, matmul
from ..tensor._tensor import Tensor
from ._registry import register_gradient

if TYPE_CHECKING:
    from ..engine._tape import TapeNode


@register_gradient(Kernel.MATMUL)
def _matmul_grad(dy: Tensor, node: "TapeNode"):
    a, b = node.inputs["a"], node.inputs["b"]
    ta = node.attrs.get("transpose_a", False)
    tb = node.attrs.get("transpose_b", False)

    if not ta and not tb:
        return {
            "a": lambda: matmul(dy, b, False, True),
            "b": lambda: matmul(a, dy, True, False),
        }
    if not ta and tb:
        return {
            "a": lambda: matmul(dy, b, False, False),
            "b": lambda: matmul(dy, a, True, False),
        }
    if ta and not tb:
        return {
            "a": lambda: matmul(b, dy, False, True),
            "b": lambda: matmul(a, dy, False, False),
        }
    return {
        "a": lambda: matmul(b, dy, True, True),
        "b": lambda: matmul(dy, a, True, True),
    }


@register_gradient(Kernel.CONV2D)
def _conv2d_grad(dy: Tensor, node: "TapeNode"):
    x, w = node.inputs["x"], node.inputs["filter"]
    stride = node.attrs["stride"]
    padding = node.attrs["padding"]
    return {
        "x": lambda: conv2d_backprop_input(dy, w, x.shape, stride, padding),
        "filter": lambda: conv2d_backprop_filter(x, dy, w.shape, stride, padding),
    }
