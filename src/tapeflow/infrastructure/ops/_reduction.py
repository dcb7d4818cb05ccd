"""
Reductions over one or more axes.

``axis=None`` reduces every axis; negative axes count from the end. Axes
are validated before dispatch (out-of-range or repeated axes raise
`ValueError`).
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

from ...domain._kernel import Kernel
from ...domain.utils import normalize_axes
from ..tensor._tensor import Tensor
from ._common import TensorLike, as_tensor, resolve_engine

Axis = Optional[Union[int, Sequence[int]]]


def _reduce(kernel: Kernel, x: TensorLike, axis: Axis, keepdims: bool) -> Tensor:
    eng = resolve_engine(x)
    t = as_tensor(x, eng)
    axes = normalize_axes(axis, t.rank)
    return eng.execute_kernel(kernel, {"x": t}, {"axes": axes, "keepdims": bool(keepdims)})


def sum(x: TensorLike, axis: Axis = None, keepdims: bool = False) -> Tensor:
    """Sum over `axis`; keeps the input dtype."""
    return _reduce(Kernel.SUM, x, axis, keepdims)


def mean(x: TensorLike, axis: Axis = None, keepdims: bool = False) -> Tensor:
    """Mean over `axis`; always float32."""
    return _reduce(Kernel.MEAN, x, axis, keepdims)


def max(x: TensorLike, axis: Axis = None, keepdims: bool = False) -> Tensor:
    return _reduce(Kernel.MAX, x, axis, keepdims)


def min(x: TensorLike, axis: Axis = None, keepdims: bool = False) -> Tensor:
    return _reduce(Kernel.MIN, x, axis, keepdims)


def argmax(x: TensorLike, axis: int = -1) -> Tensor:
    """Index of the first maximum along `axis` (int32)."""
    eng = resolve_engine(x)
    t = as_tensor(x, eng)
    (ax,) = normalize_axes(int(axis), t.rank)
    return eng.execute_kernel(Kernel.ARGMAX, {"x": t}, {"axis": ax})
