"""
Matrix multiplication and 2D convolution.

Tensor layout
-------------
Convolutions follow the NCHW layout for activations and OIHW for filters:

- x:      (N, C_in, H, W)
- filter: (C_out, C_in, K_h, K_w)
- y:      (N, C_out, H_out, W_out)

with ``H_out = (H + 2 * pad_h - K_h) // stride_h + 1`` (same for W).
Padding is symmetric: an int, an ``(pad_h, pad_w)`` pair, ``"valid"`` (no
padding) or ``"same"`` (output spatial size ``ceil(H / stride)``; only
configurations that need an even total padding per axis are supported).
"""

from __future__ import annotations

import math
from typing import Tuple, Union

from ...domain._errors import ShapeMismatchError
from ...domain._kernel import Kernel
from ..tensor._tensor import Tensor
from ._common import as_tensor, resolve_engine

IntPair = Union[int, Tuple[int, int]]
Padding = Union[int, Tuple[int, int], str]


def _pair(v: IntPair) -> Tuple[int, int]:
    """Normalize an int or a pair into a ``(h, w)`` tuple."""
    if isinstance(v, int):
        return (v, v)
    h, w = v
    return (int(h), int(w))


def matmul(
    a: Tensor, b: Tensor, transpose_a: bool = False, transpose_b: bool = False
) -> Tensor:
    """
    Matrix product of the last two axes of `a` and `b`.

    Parameters
    ----------
    a, b : Tensor
        float32 tensors of rank >= 2 with matching batch dimensions.
    transpose_a, transpose_b : bool, optional
        Swap the last two axes of the operand before multiplying.

    Raises
    ------
    ShapeMismatchError
        If an operand has rank < 2, the inner dimensions disagree or the
        batch dimensions differ.
    """
    eng = resolve_engine(a, b)
    ta = as_tensor(a, eng)
    tb = as_tensor(b, eng)
    if ta.rank < 2 or tb.rank < 2:
        raise ShapeMismatchError(
            ta.shape, tb.shape, f"matmul requires rank >= 2 operands, got {ta.rank} and {tb.rank}."
        )
    inner_a = ta.shape[-2] if transpose_a else ta.shape[-1]
    inner_b = tb.shape[-1] if transpose_b else tb.shape[-2]
    if inner_a != inner_b:
        raise ShapeMismatchError(
            ta.shape,
            tb.shape,
            f"Error in matmul: inner shapes ({inner_a}) and ({inner_b}) of tensors with "
            f"shapes {list(ta.shape)} and {list(tb.shape)} and transpose_a={transpose_a} "
            f"and transpose_b={transpose_b} must match.",
        )
    if ta.shape[:-2] != tb.shape[:-2]:
        raise ShapeMismatchError(
            ta.shape,
            tb.shape,
            f"Error in matmul: batch dimensions {list(ta.shape[:-2])} and "
            f"{list(tb.shape[:-2])} must match.",
        )
    return eng.execute_kernel(
        Kernel.MATMUL,
        {"a": ta, "b": tb},
        {"transpose_a": bool(transpose_a), "transpose_b": bool(transpose_b)},
    )


def conv_padding(
    padding: Padding,
    in_hw: Tuple[int, int],
    kernel_hw: Tuple[int, int],
    stride: Tuple[int, int],
) -> Tuple[int, int]:
    """
    Resolve a padding argument to symmetric ``(pad_h, pad_w)``.

    Raises
    ------
    ValueError
        For unknown strings, negative padding, or ``"same"`` requiring an odd
        total padding.
    """
    if isinstance(padding, str):
        if padding == "valid":
            return (0, 0)
        if padding != "same":
            raise ValueError(f"Unknown padding '{padding}'; use 'same', 'valid' or ints.")
        pads = []
        for size, k, s in zip(in_hw, kernel_hw, stride):
            out = math.ceil(size / s)
            total = max((out - 1) * s + k - size, 0)
            if total % 2:
                raise ValueError(
                    f"'same' padding needs {total} padded rows/columns for input {size}, "
                    f"kernel {k}, stride {s}; only symmetric padding is supported."
                )
            pads.append(total // 2)
        return (pads[0], pads[1])
    p = _pair(padding)
    if p[0] < 0 or p[1] < 0:
        raise ValueError(f"Padding must be non-negative, got {p}.")
    return p


def conv2d(x: Tensor, filter: Tensor, stride: IntPair = 1, padding: Padding = 0) -> Tensor:
    """
    2D cross-correlation in NCHW layout.

    Parameters
    ----------
    x : Tensor
        float32 input of shape (N, C_in, H, W).
    filter : Tensor
        float32 filter of shape (C_out, C_in, K_h, K_w).
    stride : int | tuple[int, int], optional
        Spatial stride. Defaults to 1.
    padding : int | tuple[int, int] | {"same", "valid"}, optional
        Symmetric zero padding. Defaults to 0.

    Returns
    -------
    Tensor
        Output of shape (N, C_out, H_out, W_out).

    Raises
    ------
    ShapeMismatchError
        On rank or channel mismatch, or when the padded input is smaller
        than the filter.
    """
    eng = resolve_engine(x, filter)
    tx = as_tensor(x, eng)
    tw = as_tensor(filter, eng)
    if tx.rank != 4 or tw.rank != 4:
        raise ShapeMismatchError(
            tx.shape, tw.shape, f"conv2d expects rank-4 x and filter, got {tx.rank} and {tw.rank}."
        )
    if tx.shape[1] != tw.shape[1]:
        raise ShapeMismatchError(
            tx.shape,
            tw.shape,
            f"Error in conv2d: input channels ({tx.shape[1]}) must match filter "
            f"input channels ({tw.shape[1]}).",
        )
    s = _pair(stride)
    if s[0] < 1 or s[1] < 1:
        raise ValueError(f"Stride must be positive, got {s}.")
    p = conv_padding(padding, tx.shape[2:], tw.shape[2:], s)
    for size, pad, k in zip(tx.shape[2:], p, tw.shape[2:]):
        if size + 2 * pad < k:
            raise ShapeMismatchError(
                tx.shape,
                tw.shape,
                f"Error in conv2d: padded input ({size + 2 * pad}) is smaller than the filter ({k}).",
            )
    return eng.execute_kernel(
        Kernel.CONV2D, {"x": tx, "filter": tw}, {"stride": s, "padding": p}
    )


def conv2d_backprop_input(
    dy: Tensor,
    filter: Tensor,
    input_shape: Tuple[int, int, int, int],
    stride: IntPair,
    padding: IntPair,
) -> Tensor:
    """Gradient of `conv2d` with respect to its input."""
    eng = resolve_engine(dy, filter)
    return eng.execute_kernel(
        Kernel.CONV2D_BACKPROP_INPUT,
        {"dy": dy, "filter": filter},
        {"input_shape": tuple(input_shape), "stride": _pair(stride), "padding": _pair(padding)},
    )


def conv2d_backprop_filter(
    x: Tensor,
    dy: Tensor,
    filter_shape: Tuple[int, int, int, int],
    stride: IntPair,
    padding: IntPair,
) -> Tensor:
    """Gradient of `conv2d` with respect to its filter."""
    eng = resolve_engine(x, dy)
    return eng.execute_kernel(
        Kernel.CONV2D_BACKPROP_FILTER,
        {"x": x, "dy": dy},
        {"filter_shape": tuple(filter_shape), "stride": _pair(stride), "padding": _pair(padding)},
    )
