"""
Backend contract.

A backend owns tensor storage and executes kernels from the catalog. The
engine talks to backends only through this protocol, so a CPU reference
backend and a GPU backend are interchangeable at runtime.

Storage is addressed by `DataId` handles. A handle is a (slot, generation)
pair issued by the backend's arena: when a buffer is released its slot's
generation is bumped, so a stale handle can never alias a newer buffer. The
handle also carries the epoch of the backend instance that issued it, so a
handle from a disposed instance never resolves in a replacement registered
under the same name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

import numpy as np

from ._dtype import DType
from ._kernel import Kernel


@dataclass(frozen=True)
class DataId:
    """
    Generation-checked handle to a backend-owned buffer.

    Attributes
    ----------
    backend : str
        Name of the backend that issued the handle.
    slot : int
        Arena slot index.
    generation : int
        Generation of the slot at allocation time.
    epoch : int
        Process-unique id of the backend instance that issued the handle.
    """

    backend: str
    slot: int
    generation: int
    epoch: int = 0


@dataclass(frozen=True)
class BackendMemoryInfo:
    """Memory accounting reported by a backend."""

    num_buffers: int
    num_bytes: int


@runtime_checkable
class IBackend(Protocol):
    """
    Kernel-execution and storage contract implemented by every backend.

    Notes
    -----
    All kernels share one calling convention: named tensor inputs (as
    `DataId` handles) plus named non-tensor attributes, returning the handle
    and shape of the single output.
    """

    name: str

    def kernels(self) -> frozenset[Kernel]:
        """Return the set of implemented kernels."""
        ...

    def write(self, values: np.ndarray, dtype: DType) -> DataId:
        """Upload a host storage array and return its handle."""
        ...

    def read(self, data_id: DataId) -> np.ndarray:
        """Synchronously copy a buffer back to the host."""
        ...

    async def read_async(self, data_id: DataId) -> np.ndarray:
        """Copy a buffer back to the host once pending device work completes."""
        ...

    def copy(self, data_id: DataId) -> DataId:
        """Duplicate a buffer and return the new handle."""
        ...

    def dispose_data(self, data_id: DataId) -> None:
        """Release a buffer. Releasing a stale handle is a no-op."""
        ...

    def run(
        self,
        kernel: Kernel,
        inputs: Mapping[str, DataId],
        attrs: Mapping[str, Any],
        out_dtype: DType,
    ) -> tuple[DataId, tuple[int, ...]]:
        """Execute `kernel` and return the output handle and shape."""
        ...

    def has_nan(self, data_id: DataId, dtype: DType) -> bool:
        """Return True when the buffer holds the dtype's NaN encoding."""
        ...

    def memory(self) -> BackendMemoryInfo:
        ...

    def synchronize(self) -> None:
        """Block until all submitted work has completed."""
        ...

    def dispose(self) -> None:
        """Release every buffer owned by the backend."""
        ...


BackendFactory = Callable[[], IBackend]
"""Zero-argument callable returning an `IBackend` instance."""
