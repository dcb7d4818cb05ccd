"""
Element data types and NaN encoding.

tapeflow supports a closed set of element types. Each has a storage dtype
(the NumPy / CuPy dtype used for its buffer) and a reserved NaN encoding:

- float32: IEEE NaN
- int32:   ``NAN_INT32`` (the smallest int32)
- bool:    ``NAN_BOOL`` (255 in a uint8 buffer)

The integer and boolean sentinels let "undefined" propagate through
comparison and logical kernels without being confused with 0/1.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

import numpy as np

NAN_INT32 = -(2**31)
"""Sentinel marking NaN inside int32 buffers."""

NAN_BOOL = 255
"""Sentinel marking NaN inside bool (uint8) buffers."""


class DType(Enum):
    """
    Closed enumeration of element data types.

    Attributes
    ----------
    FLOAT32 : DType
        32-bit IEEE float. The only differentiable dtype.
    INT32 : DType
        32-bit signed integer.
    BOOL : DType
        Boolean, stored as uint8 (0, 1, or ``NAN_BOOL``).
    """

    FLOAT32 = "float32"
    INT32 = "int32"
    BOOL = "bool"

    def __str__(self) -> str:
        return self.value

    @property
    def storage(self) -> np.dtype:
        """NumPy dtype of the backing buffer."""
        return _STORAGE[self]

    @property
    def itemsize(self) -> int:
        """Bytes per element in the backing buffer."""
        return int(_STORAGE[self].itemsize)

    @property
    def is_floating(self) -> bool:
        return self is DType.FLOAT32

    @property
    def nan_value(self) -> Union[float, int]:
        """The NaN encoding used by this dtype."""
        if self is DType.FLOAT32:
            return float("nan")
        if self is DType.INT32:
            return NAN_INT32
        return NAN_BOOL


_STORAGE = {
    DType.FLOAT32: np.dtype(np.float32),
    DType.INT32: np.dtype(np.int32),
    DType.BOOL: np.dtype(np.uint8),
}

_RANK = {DType.BOOL: 0, DType.INT32: 1, DType.FLOAT32: 2}

DTypeLike = Union[DType, str, np.dtype, type]


def as_dtype(value: DTypeLike) -> DType:
    """
    Normalize a dtype-like value into a `DType`.

    Parameters
    ----------
    value : DType | str | np.dtype | type
        Accepted forms: a `DType`, its name (``"float32"``, ``"int32"``,
        ``"bool"``), or a NumPy dtype / scalar type among float32, int32,
        bool and uint8 (the bool storage type).

    Returns
    -------
    DType

    Raises
    ------
    TypeError
        If the value does not name a supported dtype.
    """
    if isinstance(value, DType):
        return value
    if isinstance(value, str):
        try:
            return DType(value)
        except ValueError:
            raise TypeError(f"Unsupported dtype '{value}'.") from None
    try:
        np_dt = np.dtype(value)
    except TypeError:
        raise TypeError(f"Unsupported dtype {value!r}.") from None
    if np_dt == np.float32:
        return DType.FLOAT32
    if np_dt == np.int32:
        return DType.INT32
    if np_dt == np.bool_ or np_dt == np.uint8:
        return DType.BOOL
    raise TypeError(f"Unsupported dtype {np_dt}.")


def upcast(a: DType, b: DType) -> DType:
    """Return the wider of two dtypes (bool < int32 < float32)."""
    return a if _RANK[a] >= _RANK[b] else b


def infer_dtype(values: Any) -> DType:
    """
    Infer the dtype of Python / NumPy values.

    Booleans infer ``bool``, NumPy integer arrays infer ``int32``; everything
    else (including Python ints, matching the reference behavior of numeric
    literals) infers ``float32``.
    """
    if isinstance(values, np.ndarray):
        if values.dtype == np.bool_:
            return DType.BOOL
        if np.issubdtype(values.dtype, np.integer):
            return DType.INT32
        return DType.FLOAT32
    if isinstance(values, (bool, np.bool_)):
        return DType.BOOL
    if isinstance(values, (list, tuple)) and values:
        flat = np.asarray(values, dtype=object).ravel()
        if all(isinstance(v, (bool, np.bool_)) for v in flat):
            return DType.BOOL
    return DType.FLOAT32


def encode(values: Any, dtype: DType) -> np.ndarray:
    """
    Encode host values into a contiguous storage array for `dtype`.

    Float NaN entries become the dtype's sentinel for int32 and bool.
    Booleans are stored as 0/1; any non-zero numeric value counts as true.
    """
    if dtype is DType.FLOAT32:
        return np.array(values, dtype=np.float32, order="C")

    raw = np.asarray(values)
    if raw.dtype == np.uint8 and dtype is DType.BOOL:
        return np.where(raw == NAN_BOOL, NAN_BOOL, raw != 0).astype(np.uint8)
    if raw.dtype.kind in "iub":
        if dtype is DType.INT32:
            return np.array(raw, dtype=np.int32, order="C")
        return np.array(raw != 0, dtype=np.uint8, order="C")

    as_float = raw.astype(np.float64)
    nan_mask = np.isnan(as_float)
    if dtype is DType.INT32:
        out = np.where(nan_mask, 0.0, as_float).astype(np.int32)
        out[nan_mask] = NAN_INT32
    else:
        out = (np.where(nan_mask, 0.0, as_float) != 0).astype(np.uint8)
        out[nan_mask] = NAN_BOOL
    return out


def is_nan_array(xp: Any, values: Any, dtype: DType) -> Any:
    """
    Elementwise NaN test honoring the dtype's encoding.

    Parameters
    ----------
    xp : module
        Array module (``numpy`` or ``cupy``) owning `values`.
    values : array
        Storage array.
    dtype : DType
        Logical dtype of `values`.

    Returns
    -------
    array of bool
    """
    if dtype is DType.FLOAT32:
        return xp.isnan(values)
    if dtype is DType.INT32:
        return values == NAN_INT32
    return values == NAN_BOOL
