"""
The kernel catalog.

Every numeric operation the engine can dispatch is a member of the closed
`Kernel` enumeration. Each member has a `KernelSpec` describing the calling
convention and the pre-conditions the engine checks before any backend is
touched:

- the named input slots, in order;
- whether the inputs broadcast against each other;
- which slots must share a dtype;
- which dtypes are accepted at all;
- how the output dtype is determined.

Backends implement a subset (ideally all) of the catalog and are validated
against it when they are instantiated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ._dtype import DType


class Kernel(Enum):
    """Closed enumeration of kernel names."""

    # comparison
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    LESS = "Less"
    LESS_EQUAL = "LessEqual"
    GREATER = "Greater"
    GREATER_EQUAL = "GreaterEqual"

    # logical
    LOGICAL_AND = "LogicalAnd"
    LOGICAL_OR = "LogicalOr"
    LOGICAL_XOR = "LogicalXor"
    LOGICAL_NOT = "LogicalNot"
    WHERE = "Where"

    # arithmetic
    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"
    DIV = "Div"
    MAXIMUM = "Maximum"
    MINIMUM = "Minimum"
    POW = "Pow"

    # unary
    NEG = "Neg"
    ABS = "Abs"
    EXP = "Exp"
    LOG = "Log"
    SQRT = "Sqrt"
    SQUARE = "Square"
    RELU = "Relu"
    SIGMOID = "Sigmoid"
    TANH = "Tanh"

    # reductions
    SUM = "Sum"
    MEAN = "Mean"
    MAX = "Max"
    MIN = "Min"
    ARGMAX = "ArgMax"

    # linear algebra / convolution
    MATMUL = "MatMul"
    CONV2D = "Conv2D"
    CONV2D_BACKPROP_INPUT = "Conv2DBackpropInput"
    CONV2D_BACKPROP_FILTER = "Conv2DBackpropFilter"

    # shape / type
    CAST = "Cast"
    RESHAPE = "Reshape"
    TRANSPOSE = "Transpose"
    BROADCAST_TO = "BroadcastTo"
    FILL = "Fill"

    def __str__(self) -> str:
        return self.value


class OutputDType(Enum):
    """Rule for the dtype of a kernel's output."""

    SAME = "same"
    """Same dtype as the first input (or the `dtype` attr for FILL)."""
    BOOL = "bool"
    INT32 = "int32"
    FLOAT32 = "float32"
    ATTR = "attr"
    """Taken from the kernel's ``dtype`` attribute."""


_NUMERIC = frozenset({DType.FLOAT32, DType.INT32})
_ANY = frozenset(DType)
_BOOL = frozenset({DType.BOOL})
_FLOAT = frozenset({DType.FLOAT32})


@dataclass(frozen=True)
class KernelSpec:
    """
    Static description of a kernel.

    Attributes
    ----------
    inputs : tuple[str, ...]
        Input slot names in positional order.
    broadcasting : tuple[str, ...]
        Slots whose shapes are broadcast together. Empty for kernels that
        compute their own output shape (reductions, matmul, ...).
    same_dtype : tuple[str, ...]
        Slots that must all carry the same dtype.
    accepts : dict[str, frozenset[DType]] | None
        Allowed dtypes per slot; slots not listed accept any dtype.
    output : OutputDType
        Output dtype rule.
    """

    inputs: tuple[str, ...]
    broadcasting: tuple[str, ...] = ()
    same_dtype: tuple[str, ...] = ()
    accepts: Optional[dict[str, frozenset]] = None
    output: OutputDType = OutputDType.SAME

    def allowed(self, slot: str) -> frozenset:
        if self.accepts is None:
            return _ANY
        return self.accepts.get(slot, _ANY)


def _compare() -> KernelSpec:
    return KernelSpec(("a", "b"), ("a", "b"), ("a", "b"), None, OutputDType.BOOL)


def _logical_binary() -> KernelSpec:
    return KernelSpec(
        ("a", "b"), ("a", "b"), ("a", "b"), {"a": _BOOL, "b": _BOOL}, OutputDType.BOOL
    )


def _arith() -> KernelSpec:
    return KernelSpec(("a", "b"), ("a", "b"), ("a", "b"), {"a": _NUMERIC, "b": _NUMERIC})


def _unary_numeric() -> KernelSpec:
    return KernelSpec(("x",), accepts={"x": _NUMERIC})


def _unary_float() -> KernelSpec:
    return KernelSpec(("x",), accepts={"x": _FLOAT})


def _reduce() -> KernelSpec:
    return KernelSpec(("x",), accepts={"x": _NUMERIC})


KERNEL_SPECS: dict[Kernel, KernelSpec] = {
    Kernel.EQUAL: _compare(),
    Kernel.NOT_EQUAL: _compare(),
    Kernel.LESS: _compare(),
    Kernel.LESS_EQUAL: _compare(),
    Kernel.GREATER: _compare(),
    Kernel.GREATER_EQUAL: _compare(),
    Kernel.LOGICAL_AND: _logical_binary(),
    Kernel.LOGICAL_OR: _logical_binary(),
    Kernel.LOGICAL_XOR: _logical_binary(),
    Kernel.LOGICAL_NOT: KernelSpec(("x",), accepts={"x": _BOOL}, output=OutputDType.BOOL),
    Kernel.WHERE: KernelSpec(
        ("condition", "a", "b"),
        ("condition", "a", "b"),
        ("a", "b"),
        {"condition": _BOOL},
        OutputDType.SAME,
    ),
    Kernel.ADD: _arith(),
    Kernel.SUB: _arith(),
    Kernel.MUL: _arith(),
    Kernel.DIV: KernelSpec(
        ("a", "b"), ("a", "b"), ("a", "b"), {"a": _NUMERIC, "b": _NUMERIC},
        OutputDType.FLOAT32,
    ),
    Kernel.MAXIMUM: _arith(),
    Kernel.MINIMUM: _arith(),
    Kernel.POW: _arith(),
    Kernel.NEG: _unary_numeric(),
    Kernel.ABS: _unary_numeric(),
    Kernel.EXP: _unary_float(),
    Kernel.LOG: _unary_float(),
    Kernel.SQRT: _unary_float(),
    Kernel.SQUARE: _unary_numeric(),
    Kernel.RELU: _unary_numeric(),
    Kernel.SIGMOID: _unary_float(),
    Kernel.TANH: _unary_float(),
    Kernel.SUM: _reduce(),
    Kernel.MEAN: KernelSpec(("x",), accepts={"x": _NUMERIC}, output=OutputDType.FLOAT32),
    Kernel.MAX: _reduce(),
    Kernel.MIN: _reduce(),
    Kernel.ARGMAX: KernelSpec(("x",), accepts={"x": _NUMERIC}, output=OutputDType.INT32),
    Kernel.MATMUL: KernelSpec(
        ("a", "b"), (), ("a", "b"), {"a": _FLOAT, "b": _FLOAT}
    ),
    Kernel.CONV2D: KernelSpec(
        ("x", "filter"), (), ("x", "filter"), {"x": _FLOAT, "filter": _FLOAT}
    ),
    Kernel.CONV2D_BACKPROP_INPUT: KernelSpec(
        ("dy", "filter"), (), ("dy", "filter"), {"dy": _FLOAT, "filter": _FLOAT}
    ),
    Kernel.CONV2D_BACKPROP_FILTER: KernelSpec(
        ("x", "dy"), (), ("x", "dy"), {"x": _FLOAT, "dy": _FLOAT}
    ),
    Kernel.CAST: KernelSpec(("x",), output=OutputDType.ATTR),
    Kernel.RESHAPE: KernelSpec(("x",)),
    Kernel.TRANSPOSE: KernelSpec(("x",)),
    Kernel.BROADCAST_TO: KernelSpec(("x",)),
    Kernel.FILL: KernelSpec((), output=OutputDType.ATTR),
}
"""Catalog of every kernel and its static contract."""


def kernel_spec(kernel: Kernel) -> KernelSpec:
    """Return the `KernelSpec` registered for `kernel`."""
    return KERNEL_SPECS[kernel]


def as_kernel(value: "Kernel | str") -> Kernel:
    """
    Resolve a kernel from a `Kernel` member, its name or its value.

    Raises
    ------
    KeyError
        If no catalog entry matches.
    """
    if isinstance(value, Kernel):
        return value
    try:
        return Kernel(value)
    except ValueError:
        pass
    try:
        return Kernel[str(value).upper()]
    except KeyError:
        raise KeyError(f"Unknown kernel '{value}'.") from None
