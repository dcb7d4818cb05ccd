"""
Shape and broadcasting utilities.

Pure functions shared by every operation and gradient: computing the output
shape of a broadcasting binary op, validating strict shape equality, and
finding which axes were expanded so that gradients can be summed back to an
operand's original shape.

Broadcasting follows NumPy: shapes are aligned at the trailing dimension;
each aligned pair must be equal or contain a 1, and the shorter shape is
treated as having leading dimensions of size 1. The output takes the max of
each aligned pair.
"""

from __future__ import annotations

from typing import Any, Sequence

from .._errors import ShapeMismatchError

Shape = tuple[int, ...]


def _as_shape(shape: Sequence[int]) -> Shape:
    return tuple(int(d) for d in shape)


def size_from_shape(shape: Sequence[int]) -> int:
    """Return the number of elements of a tensor with the given shape."""
    size = 1
    for d in shape:
        size *= int(d)
    return size


def assert_and_get_broadcast_shape(shape_a: Sequence[int], shape_b: Sequence[int]) -> Shape:
    """
    Compute the broadcast output shape of two operands.

    Parameters
    ----------
    shape_a, shape_b : Sequence[int]
        Operand shapes.

    Returns
    -------
    tuple[int, ...]
        The broadcast shape.

    Raises
    ------
    ShapeMismatchError
        If an aligned pair of dimensions differs and neither is 1.
    """
    a = _as_shape(shape_a)
    b = _as_shape(shape_b)
    rank = max(len(a), len(b))
    result = []
    for i in range(rank):
        da = a[len(a) - 1 - i] if i < len(a) else 1
        db = b[len(b) - 1 - i] if i < len(b) else 1
        if da != db and da != 1 and db != 1:
            raise ShapeMismatchError(a, b)
        result.append(max(da, db) if da != 0 and db != 0 else 0)
    return tuple(reversed(result))


def assert_shapes_match(
    shape_a: Sequence[int], shape_b: Sequence[int], prefix: str = ""
) -> None:
    """
    Require two shapes to be exactly equal (no broadcasting).

    Raises
    ------
    ShapeMismatchError
        If the shapes differ in rank or in any dimension.
    """
    a = _as_shape(shape_a)
    b = _as_shape(shape_b)
    if a != b:
        raise ShapeMismatchError(
            a, b, f"{prefix}Shapes {list(a)} and {list(b)} must match"
        )


def get_broadcast_dims(in_shape: Sequence[int], out_shape: Sequence[int]) -> list[int]:
    """
    Return the axes of `in_shape` that were expanded to reach `out_shape`.

    Only axes that exist in `in_shape` are reported (axes added on the left
    are implicit). Axes are indexed in `in_shape` coordinates.
    """
    a = _as_shape(in_shape)
    o = _as_shape(out_shape)
    dims = []
    for i in range(len(a)):
        dim = len(a) - 1 - i
        in_d = a[dim]
        out_d = o[len(o) - 1 - i] if i < len(o) else 1
        if out_d > 1 and in_d == 1:
            dims.insert(0, dim)
    return dims


def get_reduction_axes(in_shape: Sequence[int], out_shape: Sequence[int]) -> list[int]:
    """
    Return the axes of `out_shape` to sum over to reduce back to `in_shape`.

    This includes the leading axes that `in_shape` lacks as well as the axes
    where `in_shape` holds a 1 and `out_shape` does not.
    """
    a = _as_shape(in_shape)
    o = _as_shape(out_shape)
    axes = []
    for i in range(len(o)):
        in_d = a[len(a) - 1 - i] if i < len(a) else None
        out_d = o[len(o) - 1 - i]
        if in_d is None or (in_d == 1 and out_d > 1):
            axes.insert(0, len(o) - 1 - i)
    return axes


def infer_shape(values: Any) -> Shape:
    """
    Infer the shape of nested Python sequences.

    Raises
    ------
    ValueError
        If the nesting is ragged.
    """
    if hasattr(values, "shape"):
        return _as_shape(values.shape)
    shape = []
    level = values
    while isinstance(level, (list, tuple)):
        shape.append(len(level))
        if not level:
            break
        first = level[0]
        for item in level:
            if isinstance(item, (list, tuple)) != isinstance(first, (list, tuple)):
                raise ValueError("Ragged nested sequence cannot form a tensor.")
            if isinstance(item, (list, tuple)) and len(item) != len(first):
                raise ValueError("Ragged nested sequence cannot form a tensor.")
        level = first
    return tuple(shape)


def normalize_axes(axis: Any, rank: int) -> tuple[int, ...]:
    """
    Normalize an axis argument (None, int, or sequence of ints) to sorted axes.

    Raises
    ------
    ValueError
        If an axis is out of range or repeated.
    """
    if axis is None:
        return tuple(range(rank))
    if isinstance(axis, int):
        axis = (axis,)
    out = []
    for ax in axis:
        ax = int(ax)
        if ax < -rank or ax >= rank:
            raise ValueError(f"Axis {ax} is out of bounds for rank {rank}.")
        ax = ax % rank
        if ax in out:
            raise ValueError(f"Axis {ax} is repeated.")
        out.append(ax)
    return tuple(sorted(out))


def reduced_shape(shape: Sequence[int], axes: Sequence[int], keepdims: bool) -> Shape:
    """Return the shape after reducing `shape` over `axes`."""
    s = _as_shape(shape)
    if keepdims:
        return tuple(1 if i in axes else d for i, d in enumerate(s))
    return tuple(d for i, d in enumerate(s) if i not in axes)
