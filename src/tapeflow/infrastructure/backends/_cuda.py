"""
CUDA backend built on CuPy.

The backend runs the same array-module kernels as the CPU backend with
``xp = cupy``. Kernels are enqueued on CuPy's current stream and run
asynchronously; `read_async` records an event after the producing work and
suspends (``asyncio.sleep(0)``) until the event completes before copying the
buffer back to the host.

CuPy is an optional dependency (``pip install tapeflow[cuda]``). It is
imported when the backend is constructed, never at package import time, and
a missing installation or a host without a CUDA device surfaces as
`BackendUnavailableError` from the factory.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any, Callable, Mapping, Optional

import numpy as np

from ...domain._backend import DataId
from ...domain._errors import BackendUnavailableError
from ...domain._kernel import Kernel
from ._base import ArrayBackend

logger = logging.getLogger(__name__)


def load_cupy() -> Any:
    """
    Import CuPy and check that a CUDA device is visible.

    Returns
    -------
    module
        The imported ``cupy`` module.

    Raises
    ------
    BackendUnavailableError
        If CuPy is not installed, or if no CUDA device can be queried.
    """
    try:
        cupy = importlib.import_module("cupy")
    except ImportError as e:
        raise BackendUnavailableError(
            "The 'cuda' backend requires CuPy; install it with 'pip install tapeflow[cuda]'."
        ) from e
    try:
        count = int(cupy.cuda.runtime.getDeviceCount())
    except cupy.cuda.runtime.CUDARuntimeError as e:
        raise BackendUnavailableError(f"CUDA runtime unavailable: {e}") from e
    if count == 0:
        raise BackendUnavailableError("No CUDA device is visible to CuPy.")
    return cupy


class CudaBackend(ArrayBackend):
    """
    CuPy-backed implementation of `IBackend`.

    Parameters
    ----------
    device_index : int
        CUDA device ordinal. All buffers and kernels live on this device.
    name : str, optional
        Backend name (default ``"cuda"``).
    kernel_table : Mapping, optional
        Restrict the exposed kernels (tests).

    Raises
    ------
    BackendUnavailableError
        If CuPy or the requested device is unavailable.
    """

    def __init__(
        self,
        device_index: int = 0,
        name: str = "cuda",
        kernel_table: Optional[Mapping[Kernel, Callable[..., Any]]] = None,
    ) -> None:
        cupy = load_cupy()
        count = int(cupy.cuda.runtime.getDeviceCount())
        if not 0 <= device_index < count:
            raise BackendUnavailableError(
                f"CUDA device {device_index} requested but only {count} device(s) exist."
            )
        super().__init__(name, cupy, kernel_table)
        self.device_index = int(device_index)
        self._device = cupy.cuda.Device(self.device_index)
        self._device.use()
        logger.debug("CUDA backend bound to device %d", self.device_index)

    def _upload(self, values: np.ndarray) -> Any:
        with self._device:
            return self.xp.asarray(values)

    def _download(self, values: Any) -> np.ndarray:
        return self.xp.asnumpy(values)

    def run(self, kernel, inputs, attrs, out_dtype):
        with self._device:
            return super().run(kernel, inputs, attrs, out_dtype)

    async def read_async(self, data_id: DataId) -> np.ndarray:
        """
        Copy a buffer to the host without blocking the event loop.

        The producing kernels were enqueued on the current stream before
        this call, so an event recorded now completes after them.
        """
        values = self._resolve(data_id).values
        with self._device:
            event = self.xp.cuda.Event(block=False, disable_timing=True)
            event.record()
        while not event.done:
            await asyncio.sleep(0)
        return self.xp.asnumpy(values)

    def synchronize(self) -> None:
        with self._device:
            self.xp.cuda.get_current_stream().synchronize()

    def start_timer(self) -> Callable[[], float]:
        with self._device:
            start = self.xp.cuda.Event()
            start.record()

        def stop() -> float:
            with self._device:
                end = self.xp.cuda.Event()
                end.record()
                end.synchronize()
            return float(self.xp.cuda.get_elapsed_time(start, end))

        return stop

    def dispose(self) -> None:
        super().dispose()
        self.xp.get_default_memory_pool().free_all_blocks()
