"""
Shared storage arena and kernel runner for array-module backends.

`ArrayBackend` implements the whole `IBackend` protocol on top of an array
module ``xp`` (NumPy or CuPy). Subclasses only decide how host arrays are
uploaded and downloaded and how the device is synchronized.

Storage model
-------------
Buffers live in a slot arena. Each slot carries a generation counter that is
bumped when the slot is released, so a `DataId` issued before the release no
longer resolves: disposing it again is a no-op and reading it raises
`AlreadyDisposedError`. Every instance also draws a fresh epoch, so handles
issued by a disposed instance never resolve in its replacement. Released
slots are recycled through a free list.
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Callable, Mapping, Optional

import numpy as np

from ...domain._backend import BackendMemoryInfo, DataId
from ...domain._dtype import DType, is_nan_array
from ...domain._errors import AlreadyDisposedError, UnimplementedKernelError
from ...domain._kernel import Kernel
from ._kernels import ARRAY_KERNELS, KernelInput

logger = logging.getLogger(__name__)

_EPOCHS = itertools.count(1)


class _Slot:
    __slots__ = ("values", "dtype", "generation")

    def __init__(self) -> None:
        self.values: Any = None
        self.dtype: Optional[DType] = None
        self.generation = 0


class ArrayBackend:
    """
    Base class for backends that compute with a NumPy-compatible module.

    Parameters
    ----------
    name : str
        Backend name; also stamped into every issued `DataId`.
    xp : module
        Array module used by the generic kernels.

    Notes
    -----
    - The kernel table defaults to every generic kernel in
      `ARRAY_KERNELS`. Pass `kernel_table` to expose a subset (used by tests
      that exercise partial backends).
    - Output arrays are coerced to the storage dtype of the output dtype the
      engine requested, and copied when they are views.
    """

    def __init__(
        self,
        name: str,
        xp: Any,
        kernel_table: Optional[Mapping[Kernel, Callable[..., Any]]] = None,
    ) -> None:
        self.name = name
        self.xp = xp
        self._table = dict(ARRAY_KERNELS if kernel_table is None else kernel_table)
        self._slots: list[_Slot] = []
        self._free: list[int] = []
        self._num_bytes = 0
        self.epoch = next(_EPOCHS)

    # ------------------------------------------------------------------
    # hooks
    # ------------------------------------------------------------------
    def _upload(self, values: np.ndarray) -> Any:
        return self.xp.asarray(values)

    def _download(self, values: Any) -> np.ndarray:
        return np.asarray(values)

    def synchronize(self) -> None:
        """Block until submitted work completes (no-op for synchronous backends)."""

    # ------------------------------------------------------------------
    # arena
    # ------------------------------------------------------------------
    def _allocate(self, values: Any, dtype: DType) -> DataId:
        if self._free:
            index = self._free.pop()
            slot = self._slots[index]
        else:
            index = len(self._slots)
            slot = _Slot()
            self._slots.append(slot)
        slot.values = values
        slot.dtype = dtype
        self._num_bytes += int(values.nbytes)
        return DataId(self.name, index, slot.generation, self.epoch)

    def _resolve(self, data_id: DataId) -> _Slot:
        if (
            data_id.backend == self.name
            and data_id.epoch == self.epoch
            and 0 <= data_id.slot < len(self._slots)
        ):
            slot = self._slots[data_id.slot]
            if slot.generation == data_id.generation and slot.values is not None:
                return slot
        raise AlreadyDisposedError(data_id.slot)

    def is_live(self, data_id: DataId) -> bool:
        try:
            self._resolve(data_id)
        except AlreadyDisposedError:
            return False
        return True

    # ------------------------------------------------------------------
    # IBackend
    # ------------------------------------------------------------------
    def kernels(self) -> frozenset[Kernel]:
        return frozenset(self._table)

    def write(self, values: np.ndarray, dtype: DType) -> DataId:
        host = np.array(values, dtype=dtype.storage, order="C", copy=True)
        return self._allocate(self._upload(host), dtype)

    def read(self, data_id: DataId) -> np.ndarray:
        return self._download(self._resolve(data_id).values)

    async def read_async(self, data_id: DataId) -> np.ndarray:
        return self.read(data_id)

    def copy(self, data_id: DataId) -> DataId:
        slot = self._resolve(data_id)
        return self._allocate(slot.values.copy(), slot.dtype)

    def dispose_data(self, data_id: DataId) -> None:
        if not self.is_live(data_id):
            return
        slot = self._slots[data_id.slot]
        self._num_bytes -= int(slot.values.nbytes)
        slot.values = None
        slot.dtype = None
        slot.generation += 1
        self._free.append(data_id.slot)

    def run(
        self,
        kernel: Kernel,
        inputs: Mapping[str, DataId],
        attrs: Mapping[str, Any],
        out_dtype: DType,
    ) -> tuple[DataId, tuple[int, ...]]:
        """
        Execute a kernel on resolved storage.

        Raises
        ------
        UnimplementedKernelError
            If `kernel` is missing from this backend's table.
        AlreadyDisposedError
            If an input handle is stale.
        """
        fn = self._table.get(kernel)
        if fn is None:
            raise UnimplementedKernelError(kernel.value, self.name)

        resolved = {}
        for slot_name, data_id in inputs.items():
            slot = self._resolve(data_id)
            resolved[slot_name] = KernelInput(slot.values, slot.dtype)

        out = fn(self.xp, resolved, attrs)
        out = self.xp.asarray(out, dtype=out_dtype.storage)
        # outputs own their buffer: views of inputs or temporaries are copied
        if out.base is not None or not out.flags.c_contiguous:
            out = out.copy()
        return self._allocate(out, out_dtype), tuple(int(d) for d in out.shape)

    def has_nan(self, data_id: DataId, dtype: DType) -> bool:
        values = self._resolve(data_id).values
        return bool(self.xp.any(is_nan_array(self.xp, values, dtype)))

    def memory(self) -> BackendMemoryInfo:
        live = sum(1 for s in self._slots if s.values is not None)
        return BackendMemoryInfo(num_buffers=live, num_bytes=self._num_bytes)

    def start_timer(self) -> Callable[[], float]:
        """
        Start measuring kernel time.

        Returns a zero-argument callable that returns the elapsed
        milliseconds once submitted work has completed.
        """
        self.synchronize()
        start = time.perf_counter()

        def stop() -> float:
            self.synchronize()
            return (time.perf_counter() - start) * 1000.0

        return stop

    def dispose(self) -> None:
        logger.debug("Disposing backend %r (%d bytes live)", self.name, self._num_bytes)
        for index, slot in enumerate(self._slots):
            if slot.values is not None:
                slot.values = None
                slot.dtype = None
                slot.generation += 1
                self._free.append(index)
        self._num_bytes = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
