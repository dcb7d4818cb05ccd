"""
Helpers shared by the operation wrappers.

Every operation resolves the engine it runs on from its tensor arguments
(falling back to the default engine), lifts Python scalars to scalar
tensors, performs its explicit pre-condition checks and finally calls
`Engine.execute_kernel`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Union

import numpy as np

from ...domain._dtype import DType
from ...domain._kernel import Kernel
from ...domain.utils import assert_shapes_match
from ..engine._environment import get_engine
from ..tensor._tensor import Tensor

if TYPE_CHECKING:
    from ..engine._engine import Engine

TensorLike = Union[Tensor, int, float, bool, np.ndarray, list, tuple]


def resolve_engine(*values: Any, engine: Optional["Engine"] = None) -> "Engine":
    """Pick the explicit engine, else the engine of the first tensor, else the default."""
    if engine is not None:
        return engine
    for v in values:
        if isinstance(v, Tensor):
            return v.engine
    return get_engine()


def _scalar_dtype(value: Any, like: DType) -> Optional[DType]:
    if isinstance(value, (bool, np.bool_)):
        return DType.BOOL if like is DType.BOOL else None
    if like is DType.FLOAT32 and isinstance(value, (int, float, np.number)):
        return DType.FLOAT32
    if like is DType.INT32 and isinstance(value, (int, np.integer)):
        return DType.INT32
    return None


def as_tensor(
    value: TensorLike, engine: "Engine", like: Optional[Tensor] = None
) -> Tensor:
    """
    Convert `value` to a tensor on `engine`.

    Python scalars adopt the dtype of `like` when they are representable in
    it (an int next to an int32 tensor stays int32, any number next to a
    float32 tensor becomes float32); otherwise the dtype is inferred.
    """
    if isinstance(value, Tensor):
        return value
    dtype = None
    if like is not None and np.ndim(value) == 0:
        dtype = _scalar_dtype(value, like.dtype)
    return engine.make_tensor(value, dtype=dtype)


def binary(
    kernel: Kernel,
    a: TensorLike,
    b: TensorLike,
    strict: bool = False,
    engine: Optional["Engine"] = None,
) -> Tensor:
    """
    Run a two-input (``a``, ``b``) kernel.

    With ``strict=True`` the operand shapes must be identical; the check
    raises `ShapeMismatchError` before anything is dispatched.
    """
    if strict and isinstance(a, Tensor) and isinstance(b, Tensor):
        assert_shapes_match(a.shape, b.shape, f"Error in {kernel.value}Strict: ")
    eng = resolve_engine(a, b, engine=engine)
    like = a if isinstance(a, Tensor) else b if isinstance(b, Tensor) else None
    ta = as_tensor(a, eng, like)
    tb = as_tensor(b, eng, like)
    if strict:
        assert_shapes_match(ta.shape, tb.shape, f"Error in {kernel.value}Strict: ")
    return eng.execute_kernel(kernel, {"a": ta, "b": tb})


def unary(
    kernel: Kernel,
    x: TensorLike,
    attrs: Optional[dict[str, Any]] = None,
    engine: Optional["Engine"] = None,
) -> Tensor:
    eng = resolve_engine(x, engine=engine)
    return eng.execute_kernel(kernel, {"x": as_tensor(x, eng)}, attrs)
