"""
Concrete Tensor and Variable implementations.

A `Tensor` is an immutable handle: it records the shape, dtype and identity
of a value, names the backend that owns the storage, and holds the opaque
`DataId` of that storage. All computation and bookkeeping (scope tracking,
tape recording, disposal) is done by the owning `Engine`; the tensor only
forwards to it.

A `Variable` is the one mutable tensor kind. `assign` swaps the storage
behind the same identity, so tape nodes and user references keep pointing
at the variable. Variables are never tracked by scopes and live until they
are disposed explicitly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from ...domain._backend import DataId
from ...domain._dtype import DType
from ...domain._errors import AlreadyDisposedError
from ...domain.utils import size_from_shape
from .mixins import (
    TensorMixinArithmetic,
    TensorMixinComparison,
    TensorMixinReduction,
    TensorMixinShape,
    TensorMixinUnary,
)

if TYPE_CHECKING:
    from ..engine._engine import Engine


class Tensor(
    TensorMixinArithmetic,
    TensorMixinComparison,
    TensorMixinUnary,
    TensorMixinReduction,
    TensorMixinShape,
):
    """
    Engine-managed n-dimensional array.

    Tensors are created by the engine (operation outputs, creation
    functions); user code should not call the constructor directly.

    Parameters
    ----------
    engine : Engine
        Owning engine.
    data_id : DataId
        Storage handle issued by the owning backend.
    shape : tuple[int, ...]
        Tensor shape.
    dtype : DType
        Element dtype.

    Notes
    -----
    - ``__eq__`` / ``__hash__`` are identity based; see `equal` for the
      elementwise comparison.
    - ``kept`` is set by `Engine.keep` and is sticky: no scope ever
      releases a kept tensor.
    """

    def __init__(
        self,
        engine: "Engine",
        data_id: DataId,
        shape: tuple[int, ...],
        dtype: DType,
    ) -> None:
        self._engine = engine
        self._data_id = data_id
        self._shape = tuple(int(d) for d in shape)
        self._dtype = dtype
        self._id = engine.next_tensor_id()
        self._disposed = False
        self.kept = False

    # ----------------------------
    # metadata
    # ----------------------------
    @property
    def id(self) -> int:
        return self._id

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> DType:
        return self._dtype

    @property
    def size(self) -> int:
        return size_from_shape(self._shape)

    @property
    def rank(self) -> int:
        return len(self._shape)

    @property
    def nbytes(self) -> int:
        return self.size * self._dtype.itemsize

    @property
    def backend_name(self) -> str:
        """Name of the backend that owns this tensor's storage."""
        return self._data_id.backend

    @property
    def data_id(self) -> DataId:
        """
        Storage handle of this tensor.

        Raises
        ------
        AlreadyDisposedError
            If the tensor has been disposed.
        """
        self._check_live()
        return self._data_id

    @property
    def engine(self) -> "Engine":
        return self._engine

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _check_live(self) -> None:
        if self._disposed:
            raise AlreadyDisposedError(self._id)

    # ----------------------------
    # host access
    # ----------------------------
    def to_numpy(self) -> np.ndarray:
        """
        Copy the values to a host NumPy array.

        Bool tensors come back as ``uint8`` (0, 1 or the NaN sentinel 255);
        int32 tensors keep their NaN sentinel.
        """
        return self._engine.read(self)

    async def data(self) -> np.ndarray:
        """
        Asynchronously copy the values to the host.

        On the GPU backend this waits for pending kernels without blocking
        the event loop.
        """
        return await self._engine.read_async(self)

    def item(self) -> Any:
        """
        Return the single value of a size-1 tensor as a Python scalar.

        Raises
        ------
        ValueError
            If the tensor holds more than one element.
        """
        if self.size != 1:
            raise ValueError(
                f"Tensor.item() requires a 1-element tensor, got shape={self.shape}"
            )
        return self.to_numpy().reshape(-1)[0].item()

    def tolist(self) -> Any:
        return self.to_numpy().tolist()

    # ----------------------------
    # lifetime
    # ----------------------------
    def dispose(self) -> None:
        """Release the storage. Disposing twice is a no-op."""
        self._engine.dispose_tensor(self)

    def _mark_disposed(self) -> None:
        self._disposed = True

    def __repr__(self) -> str:
        state = ", disposed" if self._disposed else ""
        return (
            f"Tensor(id={self._id}, shape={self._shape}, dtype={self._dtype}, "
            f"backend={self.backend_name!r}{state})"
        )

    def __len__(self) -> int:
        if not self._shape:
            raise TypeError("len() of a 0-d tensor")
        return self._shape[0]

    # ``<``/``>`` return tensors, so truthiness would be ambiguous
    def __bool__(self) -> bool:
        raise TypeError(
            "The truth value of a Tensor is ambiguous; read it with .item() or .to_numpy()."
        )


class Variable(Tensor):
    """
    Mutable, named tensor.

    Parameters
    ----------
    engine : Engine
        Owning engine.
    data_id : DataId
        Initial storage handle.
    shape : tuple[int, ...]
        Fixed shape; `assign` must preserve it.
    dtype : DType
        Fixed dtype; `assign` must preserve it.
    name : str
        Unique name within the engine.
    trainable : bool, optional
        Whether `variable_grads` differentiates this variable by default.
    """

    def __init__(
        self,
        engine: "Engine",
        data_id: DataId,
        shape: tuple[int, ...],
        dtype: DType,
        name: str,
        trainable: bool = True,
    ) -> None:
        super().__init__(engine, data_id, shape, dtype)
        self.name = name
        self.trainable = trainable

    def assign(self, value: Tensor) -> "Variable":
        """
        Replace this variable's values with a copy of `value`.

        Raises
        ------
        TypeMismatchError
            If `value` has a different dtype.
        ShapeMismatchError
            If `value` has a different shape.
        AlreadyDisposedError
            If either tensor is disposed.
        """
        self._engine.assign_variable(self, value)
        return self

    def _swap_data(self, data_id: DataId) -> DataId:
        old, self._data_id = self._data_id, data_id
        return old

    def __repr__(self) -> str:
        return (
            f"Variable(name={self.name!r}, shape={self._shape}, dtype={self._dtype}, "
            f"trainable={self.trainable})"
        )
