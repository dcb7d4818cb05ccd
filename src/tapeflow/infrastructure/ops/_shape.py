"""
Shape and dtype transformations.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...domain._dtype import DTypeLike, as_dtype
from ...domain._errors import ShapeMismatchError
from ...domain._kernel import Kernel
from ...domain.utils import assert_and_get_broadcast_shape, size_from_shape
from ..tensor._tensor import Tensor
from ._common import TensorLike, as_tensor, resolve_engine


def cast(x: TensorLike, dtype: DTypeLike) -> Tensor:
    """
    Convert to another dtype.

    NaN is preserved across dtypes (IEEE NaN <-> int32 / bool sentinels).
    float -> int32 truncates toward zero; any non-zero value casts to true.
    """
    eng = resolve_engine(x)
    return eng.execute_kernel(Kernel.CAST, {"x": as_tensor(x, eng)}, {"dtype": as_dtype(dtype)})


def _infer_reshape(size: int, shape: Sequence[int]) -> tuple[int, ...]:
    shape = [int(d) for d in shape]
    unknown = [i for i, d in enumerate(shape) if d == -1]
    if len(unknown) > 1:
        raise ValueError("Shapes can only have one -1 dimension.")
    if any(d < -1 for d in shape):
        raise ValueError(f"Invalid shape {shape}.")
    if unknown:
        known = size_from_shape([d for d in shape if d != -1])
        if known == 0 or size % known:
            raise ValueError(f"Cannot reshape a tensor of {size} elements into {shape}.")
        shape[unknown[0]] = size // known
    return tuple(shape)


def reshape(x: TensorLike, shape: Sequence[int]) -> Tensor:
    """
    Reshape without changing the values.

    Raises
    ------
    ValueError
        If the new shape holds a different number of elements.
    """
    eng = resolve_engine(x)
    t = as_tensor(x, eng)
    new_shape = _infer_reshape(t.size, shape)
    if size_from_shape(new_shape) != t.size:
        raise ValueError(
            f"Size({t.size}) must match the product of shape {list(new_shape)}."
        )
    return eng.execute_kernel(Kernel.RESHAPE, {"x": t}, {"shape": new_shape})


def transpose(x: TensorLike, perm: Optional[Sequence[int]] = None) -> Tensor:
    """Permute axes; the default reverses them."""
    eng = resolve_engine(x)
    t = as_tensor(x, eng)
    if perm is None:
        perm = tuple(reversed(range(t.rank)))
    perm = tuple(int(p) for p in perm)
    if sorted(perm) != list(range(t.rank)):
        raise ValueError(f"perm {list(perm)} is not a permutation of the {t.rank} axes.")
    return eng.execute_kernel(Kernel.TRANSPOSE, {"x": t}, {"perm": perm})


def broadcast_to(x: TensorLike, shape: Sequence[int]) -> Tensor:
    """
    Broadcast to `shape`.

    Raises
    ------
    ShapeMismatchError
        If `x` cannot be broadcast to `shape`.
    """
    eng = resolve_engine(x)
    t = as_tensor(x, eng)
    target = tuple(int(d) for d in shape)
    if len(target) < t.rank or assert_and_get_broadcast_shape(t.shape, target) != target:
        raise ShapeMismatchError(
            t.shape, target, f"Cannot broadcast shape {list(t.shape)} to {list(target)}."
        )
    return eng.execute_kernel(Kernel.BROADCAST_TO, {"x": t}, {"shape": target})
