"""
Tensor creation functions.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Optional, Sequence

import numpy as np

from ...domain._dtype import NAN_BOOL, NAN_INT32, DType, DTypeLike, as_dtype
from ...domain._kernel import Kernel
from ..tensor._tensor import Tensor, Variable
from ._common import resolve_engine

if TYPE_CHECKING:
    from ..engine._engine import Engine


def tensor(
    values: Any,
    shape: Optional[Sequence[int]] = None,
    dtype: Optional[DTypeLike] = None,
    engine: Optional["Engine"] = None,
) -> Tensor:
    """
    Create a tensor from nested sequences, a NumPy array or a scalar.

    Parameters
    ----------
    values : array-like
        Values; ``float('nan')`` entries are stored as the dtype's NaN.
    shape : Sequence[int], optional
        Reshape the values to this shape.
    dtype : DTypeLike, optional
        ``"float32"``, ``"int32"`` or ``"bool"``; inferred when omitted
        (booleans -> bool, integer NumPy arrays -> int32, else float32).

    Examples
    --------
    >>> tensor([[1, 2], [3, 4]], dtype="int32").shape
    (2, 2)
    """
    return resolve_engine(engine=engine).make_tensor(values, shape=shape, dtype=dtype)


def scalar(
    value: Any, dtype: Optional[DTypeLike] = None, engine: Optional["Engine"] = None
) -> Tensor:
    """
    Create a rank-0 tensor.

    Raises
    ------
    ValueError
        If `value` is not a scalar.
    """
    if np.ndim(value) != 0:
        raise ValueError(f"scalar() expects a single value, got shape {np.shape(value)}.")
    return tensor(value, dtype=dtype, engine=engine)


def _fill_value(value: Any, dtype: DType) -> Any:
    if dtype is DType.FLOAT32:
        return float(value)
    is_nan = isinstance(value, float) and math.isnan(value)
    if dtype is DType.INT32:
        return NAN_INT32 if is_nan else int(value)
    return NAN_BOOL if is_nan else int(bool(value))


def fill(
    shape: Sequence[int],
    value: Any,
    dtype: Optional[DTypeLike] = None,
    engine: Optional["Engine"] = None,
) -> Tensor:
    """Create a tensor of `shape` where every element is `value`."""
    if dtype is None:
        dt = DType.BOOL if isinstance(value, (bool, np.bool_)) else DType.FLOAT32
    else:
        dt = as_dtype(dtype)
    shape = tuple(int(d) for d in shape)
    if any(d < 0 for d in shape):
        raise ValueError(f"Shape {list(shape)} has negative dimensions.")
    eng = resolve_engine(engine=engine)
    return eng.execute_kernel(
        Kernel.FILL, {}, {"shape": shape, "value": _fill_value(value, dt), "dtype": dt}
    )


def zeros(
    shape: Sequence[int], dtype: DTypeLike = "float32", engine: Optional["Engine"] = None
) -> Tensor:
    return fill(shape, 0, dtype, engine)


def ones(
    shape: Sequence[int], dtype: DTypeLike = "float32", engine: Optional["Engine"] = None
) -> Tensor:
    return fill(shape, 1, dtype, engine)


def zeros_like(x: Tensor) -> Tensor:
    return fill(x.shape, 0, x.dtype, x.engine)


def ones_like(x: Tensor) -> Tensor:
    return fill(x.shape, 1, x.dtype, x.engine)


def variable(
    initial: Any,
    name: Optional[str] = None,
    trainable: bool = True,
    dtype: Optional[DTypeLike] = None,
    engine: Optional["Engine"] = None,
) -> Variable:
    """
    Create a mutable, named tensor.

    Variables are not tracked by scopes; they live until disposed.

    Raises
    ------
    ValueError
        If `name` is already used by a live variable of the engine.
    """
    eng = resolve_engine(initial, engine=engine)
    return eng.make_variable(initial, name=name, trainable=trainable, dtype=dtype)
