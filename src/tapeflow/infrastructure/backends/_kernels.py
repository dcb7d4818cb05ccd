"""
Array-module generic kernel implementations.

Every kernel in this module is written against an array module ``xp`` that
follows the NumPy API, so one implementation serves both the CPU backend
(``xp = numpy``) and the CUDA backend (``xp = cupy``). Kernels receive their
inputs as `KernelInput` pairs (storage array + logical dtype) and return a
single storage array; the owning backend coerces the result to the output
dtype chosen by the engine.

NaN handling
------------
Comparison and logical kernels never raise on NaN: wherever an operand holds
its dtype's NaN encoding, the output holds ``NAN_BOOL``. Integer arithmetic
propagates ``NAN_INT32`` the same way. Float kernels rely on IEEE NaN.

Tensor layout for convolutions is NCHW with OIHW filters.
"""

from __future__ import annotations

import contextlib
from typing import Any, Callable, Mapping, NamedTuple

from ...domain._dtype import NAN_BOOL, NAN_INT32, DType, is_nan_array
from ...domain._kernel import Kernel


class KernelInput(NamedTuple):
    """A storage array together with its logical dtype."""

    values: Any
    dtype: DType


KernelFn = Callable[[Any, Mapping[str, KernelInput], Mapping[str, Any]], Any]

ARRAY_KERNELS: dict[Kernel, KernelFn] = {}
"""Kernel table shared by every array-module backend."""


def array_kernel(*kernels: Kernel) -> Callable[[KernelFn], KernelFn]:
    """Register the decorated function as the implementation of `kernels`."""

    def decorator(fn: KernelFn) -> KernelFn:
        for k in kernels:
            ARRAY_KERNELS[k] = fn
        return fn

    return decorator


def _errstate(xp: Any):
    if hasattr(xp, "errstate"):
        return xp.errstate(divide="ignore", invalid="ignore", over="ignore")
    return contextlib.nullcontext()


def _nan_mask(xp: Any, *inputs: KernelInput) -> Any:
    mask = None
    for inp in inputs:
        m = is_nan_array(xp, inp.values, inp.dtype)
        mask = m if mask is None else xp.logical_or(mask, m)
    return mask


def _as_float(xp: Any, inp: KernelInput) -> Any:
    """View an input as float32, mapping integer/bool sentinels to NaN."""
    if inp.dtype is DType.FLOAT32:
        return inp.values
    out = inp.values.astype(xp.float32)
    return xp.where(is_nan_array(xp, inp.values, inp.dtype), xp.float32("nan"), out)


def _with_int_nan(xp: Any, out: Any, *inputs: KernelInput) -> Any:
    if inputs[0].dtype is not DType.INT32:
        return out
    return xp.where(_nan_mask(xp, *inputs), NAN_INT32, out).astype(xp.int32)


# ---------------------------------------------------------------------
# comparison
# ---------------------------------------------------------------------
_COMPARE_UFUNCS = {
    Kernel.EQUAL: "equal",
    Kernel.NOT_EQUAL: "not_equal",
    Kernel.LESS: "less",
    Kernel.LESS_EQUAL: "less_equal",
    Kernel.GREATER: "greater",
    Kernel.GREATER_EQUAL: "greater_equal",
}


def _make_compare(ufunc_name: str) -> KernelFn:
    def compare(xp, inputs, attrs):
        a, b = inputs["a"], inputs["b"]
        out = getattr(xp, ufunc_name)(a.values, b.values).astype(xp.uint8)
        return xp.where(_nan_mask(xp, a, b), NAN_BOOL, out).astype(xp.uint8)

    compare.__name__ = f"compare_{ufunc_name}"
    return compare


for _kernel, _ufunc in _COMPARE_UFUNCS.items():
    array_kernel(_kernel)(_make_compare(_ufunc))


# ---------------------------------------------------------------------
# logical
# ---------------------------------------------------------------------
_LOGICAL_UFUNCS = {
    Kernel.LOGICAL_AND: "logical_and",
    Kernel.LOGICAL_OR: "logical_or",
    Kernel.LOGICAL_XOR: "logical_xor",
}


def _make_logical(ufunc_name: str) -> KernelFn:
    def logical(xp, inputs, attrs):
        a, b = inputs["a"], inputs["b"]
        out = getattr(xp, ufunc_name)(a.values == 1, b.values == 1).astype(xp.uint8)
        return xp.where(_nan_mask(xp, a, b), NAN_BOOL, out).astype(xp.uint8)

    logical.__name__ = ufunc_name
    return logical


for _kernel, _ufunc in _LOGICAL_UFUNCS.items():
    array_kernel(_kernel)(_make_logical(_ufunc))


@array_kernel(Kernel.LOGICAL_NOT)
def logical_not(xp, inputs, attrs):
    x = inputs["x"]
    out = (x.values != 1).astype(xp.uint8)
    return xp.where(x.values == NAN_BOOL, NAN_BOOL, out).astype(xp.uint8)


@array_kernel(Kernel.WHERE)
def where(xp, inputs, attrs):
    cond, a, b = inputs["condition"], inputs["a"], inputs["b"]
    out = xp.where(cond.values == 1, a.values, b.values)
    nan_value = a.dtype.nan_value
    if a.dtype is DType.FLOAT32:
        nan_value = xp.float32(nan_value)
    return xp.where(cond.values == NAN_BOOL, nan_value, out).astype(a.dtype.storage)


# ---------------------------------------------------------------------
# arithmetic
# ---------------------------------------------------------------------
_ARITH_UFUNCS = {
    Kernel.ADD: "add",
    Kernel.SUB: "subtract",
    Kernel.MUL: "multiply",
    Kernel.MAXIMUM: "maximum",
    Kernel.MINIMUM: "minimum",
}


def _make_arith(ufunc_name: str) -> KernelFn:
    def arith(xp, inputs, attrs):
        a, b = inputs["a"], inputs["b"]
        with _errstate(xp):
            out = getattr(xp, ufunc_name)(a.values, b.values)
        return _with_int_nan(xp, out, a, b)

    arith.__name__ = ufunc_name
    return arith


for _kernel, _ufunc in _ARITH_UFUNCS.items():
    array_kernel(_kernel)(_make_arith(_ufunc))


@array_kernel(Kernel.DIV)
def div(xp, inputs, attrs):
    a, b = inputs["a"], inputs["b"]
    with _errstate(xp):
        return xp.divide(_as_float(xp, a), _as_float(xp, b))


@array_kernel(Kernel.POW)
def power(xp, inputs, attrs):
    a, b = inputs["a"], inputs["b"]
    with _errstate(xp):
        if a.dtype is DType.FLOAT32:
            return xp.power(a.values, b.values)
        out = xp.power(a.values.astype(xp.float64), b.values.astype(xp.float64))
    out = xp.where(xp.isfinite(out), out, 0).astype(xp.int32)
    return _with_int_nan(xp, out, a, b)


# ---------------------------------------------------------------------
# unary
# ---------------------------------------------------------------------
def _make_unary(fn: Callable[[Any, Any], Any], name: str) -> KernelFn:
    def unary(xp, inputs, attrs):
        x = inputs["x"]
        with _errstate(xp):
            out = fn(xp, x.values)
        return _with_int_nan(xp, out, x)

    unary.__name__ = name
    return unary


_UNARY = {
    Kernel.NEG: (lambda xp, v: xp.negative(v), "neg"),
    Kernel.ABS: (lambda xp, v: xp.abs(v), "abs"),
    Kernel.EXP: (lambda xp, v: xp.exp(v), "exp"),
    Kernel.LOG: (lambda xp, v: xp.log(v), "log"),
    Kernel.SQRT: (lambda xp, v: xp.sqrt(v), "sqrt"),
    Kernel.SQUARE: (lambda xp, v: xp.square(v), "square"),
    Kernel.RELU: (lambda xp, v: xp.where(v > 0, v, xp.zeros_like(v)), "relu"),
    Kernel.SIGMOID: (lambda xp, v: 1.0 / (1.0 + xp.exp(-v)), "sigmoid"),
    Kernel.TANH: (lambda xp, v: xp.tanh(v), "tanh"),
}

for _kernel, (_fn, _name) in _UNARY.items():
    array_kernel(_kernel)(_make_unary(_fn, _name))


# ---------------------------------------------------------------------
# reductions
# ---------------------------------------------------------------------
# Results of max/min over an empty extent; the int32 bounds skip NAN_INT32.
_EMPTY_EXTREMES = {
    "max": {DType.FLOAT32: float("-inf"), DType.INT32: NAN_INT32 + 1},
    "min": {DType.FLOAT32: float("inf"), DType.INT32: 2**31 - 1},
}


def _make_reduce(name: str) -> KernelFn:
    def reduce(xp, inputs, attrs):
        x = inputs["x"]
        axes = tuple(attrs["axes"])
        keepdims = bool(attrs.get("keepdims", False))
        values = _as_float(xp, x) if name == "mean" else x.values
        if not axes:
            return values.copy()
        if name in _EMPTY_EXTREMES and any(values.shape[a] == 0 for a in axes):
            shape = xp.sum(values, axis=axes, keepdims=keepdims).shape
            return xp.full(shape, _EMPTY_EXTREMES[name][x.dtype], dtype=values.dtype)
        out = getattr(xp, name)(values, axis=axes, keepdims=keepdims)
        if x.dtype is DType.INT32 and name != "mean":
            nan = xp.any(is_nan_array(xp, x.values, x.dtype), axis=axes, keepdims=keepdims)
            out = xp.where(nan, NAN_INT32, out)
        return out

    reduce.__name__ = f"reduce_{name}"
    return reduce


for _kernel, _name in (
    (Kernel.SUM, "sum"),
    (Kernel.MEAN, "mean"),
    (Kernel.MAX, "max"),
    (Kernel.MIN, "min"),
):
    array_kernel(_kernel)(_make_reduce(_name))


@array_kernel(Kernel.ARGMAX)
def argmax(xp, inputs, attrs):
    return xp.argmax(inputs["x"].values, axis=int(attrs["axis"]))


# ---------------------------------------------------------------------
# linear algebra / convolution
# ---------------------------------------------------------------------
@array_kernel(Kernel.MATMUL)
def matmul(xp, inputs, attrs):
    a = inputs["a"].values
    b = inputs["b"].values
    if attrs.get("transpose_a", False):
        a = xp.swapaxes(a, -1, -2)
    if attrs.get("transpose_b", False):
        b = xp.swapaxes(b, -1, -2)
    return xp.matmul(a, b)


def _conv_geometry(attrs: Mapping[str, Any]) -> tuple[int, int, int, int]:
    s_h, s_w = attrs["stride"]
    p_h, p_w = attrs["padding"]
    return int(s_h), int(s_w), int(p_h), int(p_w)


@array_kernel(Kernel.CONV2D)
def conv2d(xp, inputs, attrs):
    x = inputs["x"].values
    w = inputs["filter"].values
    s_h, s_w, p_h, p_w = _conv_geometry(attrs)

    N, _, H, W = x.shape
    C_out, _, K_h, K_w = w.shape
    H_out = (H + 2 * p_h - K_h) // s_h + 1
    W_out = (W + 2 * p_w - K_w) // s_w + 1

    x_pad = xp.pad(x, ((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)))
    y = xp.zeros((N, C_out, H_out, W_out), dtype=x.dtype)
    for i in range(K_h):
        for j in range(K_w):
            patch = x_pad[:, :, i : i + s_h * H_out : s_h, j : j + s_w * W_out : s_w]
            y += xp.einsum("nchw,oc->nohw", patch, w[:, :, i, j])
    return y


@array_kernel(Kernel.CONV2D_BACKPROP_INPUT)
def conv2d_backprop_input(xp, inputs, attrs):
    dy = inputs["dy"].values
    w = inputs["filter"].values
    s_h, s_w, p_h, p_w = _conv_geometry(attrs)
    N, C_in, H, W = (int(d) for d in attrs["input_shape"])
    _, _, K_h, K_w = w.shape
    _, _, H_out, W_out = dy.shape

    dx_pad = xp.zeros((N, C_in, H + 2 * p_h, W + 2 * p_w), dtype=dy.dtype)
    for i in range(K_h):
        for j in range(K_w):
            dx_pad[:, :, i : i + s_h * H_out : s_h, j : j + s_w * W_out : s_w] += xp.einsum(
                "nohw,oc->nchw", dy, w[:, :, i, j]
            )
    return dx_pad[:, :, p_h : p_h + H, p_w : p_w + W]


@array_kernel(Kernel.CONV2D_BACKPROP_FILTER)
def conv2d_backprop_filter(xp, inputs, attrs):
    x = inputs["x"].values
    dy = inputs["dy"].values
    s_h, s_w, p_h, p_w = _conv_geometry(attrs)
    C_out, C_in, K_h, K_w = (int(d) for d in attrs["filter_shape"])
    _, _, H_out, W_out = dy.shape

    x_pad = xp.pad(x, ((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)))
    dw = xp.zeros((C_out, C_in, K_h, K_w), dtype=x.dtype)
    for i in range(K_h):
        for j in range(K_w):
            patch = x_pad[:, :, i : i + s_h * H_out : s_h, j : j + s_w * W_out : s_w]
            dw[:, :, i, j] = xp.einsum("nchw,nohw->oc", patch, dy)
    return dw


# ---------------------------------------------------------------------
# shape / type
# ---------------------------------------------------------------------
@array_kernel(Kernel.CAST)
def cast(xp, inputs, attrs):
    x = inputs["x"]
    target: DType = attrs["dtype"]
    if target is x.dtype:
        return x.values.copy()
    nan = is_nan_array(xp, x.values, x.dtype)
    if target is DType.FLOAT32:
        return _as_float(xp, x)
    if target is DType.INT32:
        if x.dtype is DType.FLOAT32:
            clean = xp.where(nan, 0, x.values)
        else:
            clean = xp.where(nan, 0, x.values).astype(xp.int32)
        return xp.where(nan, NAN_INT32, clean.astype(xp.int32)).astype(xp.int32)
    out = (x.values != 0).astype(xp.uint8)
    return xp.where(nan, NAN_BOOL, out).astype(xp.uint8)


@array_kernel(Kernel.RESHAPE)
def reshape(xp, inputs, attrs):
    return xp.reshape(inputs["x"].values, tuple(attrs["shape"])).copy()


@array_kernel(Kernel.TRANSPOSE)
def transpose(xp, inputs, attrs):
    return xp.transpose(inputs["x"].values, tuple(attrs["perm"])).copy()


@array_kernel(Kernel.BROADCAST_TO)
def broadcast_to(xp, inputs, attrs):
    return xp.broadcast_to(inputs["x"].values, tuple(attrs["shape"])).copy()


@array_kernel(Kernel.FILL)
def fill(xp, inputs, attrs):
    dtype: DType = attrs["dtype"]
    return xp.full(tuple(attrs["shape"]), attrs["value"], dtype=dtype.storage)
