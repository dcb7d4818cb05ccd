"""
Gradients of the elementwise unary kernels.

Where the derivative is most cheaply expressed through the forward output
(`exp`, `sqrt`, `sigmoid`, `tanh`), the node's output tensor is reused.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...domain._kernel import Kernel
from ..ops import greater, less, neg, where
from ..tensor._tensor import Tensor
from ._registry import register_gradient

if TYPE_CHECKING:
    from ..engine._tape import TapeNode


@register_gradient(Kernel.NEG)
def _neg_grad(dy: Tensor, node: "TapeNode"):
    return {"x": lambda: neg(dy)}


@register_gradient(Kernel.ABS)
def _abs_grad(dy: Tensor, node: "TapeNode"):
    """
    Implements:

        d|x|/dx = sign(x)   (0 at x == 0)
    """
    x = node.inputs["x"]
    return {"x": lambda: where(greater(x, 0.0), dy, where(less(x, 0.0), neg(dy), 0.0))}


@register_gradient(Kernel.EXP)
def _exp_grad(dy: Tensor, node: "TapeNode"):
    y = node.output
    return {"x": lambda: dy * y}


@register_gradient(Kernel.LOG)
def _log_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    return {"x": lambda: dy / x}


@register_gradient(Kernel.SQRT)
def _sqrt_grad(dy: Tensor, node: "TapeNode"):
    """
    Implements:

        d(sqrt(x))/dx = 1 / (2 * sqrt(x))
    """
    y = node.output
    return {"x": lambda: dy / (y * 2.0)}


@register_gradient(Kernel.SQUARE)
def _square_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    return {"x": lambda: dy * (x * 2.0)}


@register_gradient(Kernel.RELU)
def _relu_grad(dy: Tensor, node: "TapeNode"):
    x = node.inputs["x"]
    return {"x": lambda: where(greater(x, 0.0), dy, 0.0)}


@register_gradient(Kernel.SIGMOID)
def _sigmoid_grad(dy: Tensor, node: "TapeNode"):
    """
    Implements:

        d(sigmoid)/dx = sigmoid(x) * (1 - sigmoid(x))
    """
    y = node.output
    return {"x": lambda: dy * (y * (1.0 - y))}


@register_gradient(Kernel.TANH)
def _tanh_grad(dy: Tensor, node: "TapeNode"):
    y = node.output
    return {"x": lambda: dy * (1.0 - y * y)}
