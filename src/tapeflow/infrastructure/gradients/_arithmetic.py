"""
Gradients of the broadcasting binary kernels.

Every gradient here is computed for the broadcast output shape first and
then summed back to the shape of the operand it belongs to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...domain._kernel import Kernel
from ..ops import greater, greater_equal, less, less_equal, log, neg, pow, where, zeros_like
from ..tensor._tensor import Tensor
from ._registry import register_gradient
from ._utils import sum_to_shape

if TYPE_CHECKING:
    from ..engine._tape import TapeNode


@register_gradient(Kernel.ADD)
def _add_grad(dy: Tensor, node: "TapeNode"):
    a, b = node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(dy, a.shape),
        "b": lambda: sum_to_shape(dy, b.shape),
    }


@register_gradient(Kernel.SUB)
def _sub_grad(dy: Tensor, node: "TapeNode"):
    a, b = node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(dy, a.shape),
        "b": lambda: sum_to_shape(neg(dy), b.shape),
    }


@register_gradient(Kernel.MUL)
def _mul_grad(dy: Tensor, node: "TapeNode"):
    """
    Implements:

        d(a * b)/da = b,  d(a * b)/db = a
    """
    a, b = node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(dy * b, a.shape),
        "b": lambda: sum_to_shape(dy * a, b.shape),
    }


@register_gradient(Kernel.DIV)
def _div_grad(dy: Tensor, node: "TapeNode"):
    """
    Implements:

        d(a / b)/da = 1 / b,  d(a / b)/db = -a / b^2
    """
    a, b = node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(dy / b, a.shape),
        "b": lambda: sum_to_shape(neg(dy * a) / (b * b), b.shape),
    }


@register_gradient(Kernel.MAXIMUM)
def _maximum_grad(dy: Tensor, node: "TapeNode"):
    # ties go to `a`
    a, b = node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(where(greater_equal(a, b), dy, 0.0), a.shape),
        "b": lambda: sum_to_shape(where(less(a, b), dy, 0.0), b.shape),
    }


@register_gradient(Kernel.MINIMUM)
def _minimum_grad(dy: Tensor, node: "TapeNode"):
    # ties go to `a`
    a, b = node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(where(less_equal(a, b), dy, 0.0), a.shape),
        "b": lambda: sum_to_shape(where(greater(a, b), dy, 0.0), b.shape),
    }


@register_gradient(Kernel.POW)
def _pow_grad(dy: Tensor, node: "TapeNode"):
    """
    Implements:

        d(a^b)/da = b * a^(b - 1)
        d(a^b)/db = a^b * log(a)   (taken as 0 where a <= 0)
    """
    a, b = node.inputs["a"], node.inputs["b"]
    y = node.output

    def grad_b() -> Tensor:
        safe_log = where(greater(a, 0.0), log(a), zeros_like(a))
        return sum_to_shape(dy * y * safe_log, b.shape)

    return {
        "a": lambda: sum_to_shape(dy * b * pow(a, b - 1.0), a.shape),
        "b": grad_b,
    }


@register_gradient(Kernel.WHERE)
def _where_grad(dy: Tensor, node: "TapeNode"):
    cond, a, b = node.inputs["condition"], node.inputs["a"], node.inputs["b"]
    return {
        "a": lambda: sum_to_shape(where(cond, dy, 0.0), a.shape),
        "b": lambda: sum_to_shape(where(cond, 0.0, dy), b.shape),
    }
