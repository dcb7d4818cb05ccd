"""
CPU reference backend.

Runs every catalog kernel with NumPy on host memory. It is the default
backend and the numerical reference the GPU backend is tested against.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

import numpy as np

from ...domain._kernel import Kernel
from ._base import ArrayBackend


class CPUBackend(ArrayBackend):
    """NumPy-backed implementation of `IBackend`."""

    def __init__(
        self,
        name: str = "cpu",
        kernel_table: Optional[Mapping[Kernel, Callable[..., Any]]] = None,
    ) -> None:
        super().__init__(name, np, kernel_table)

    def _upload(self, values: np.ndarray) -> np.ndarray:
        return values

    def _download(self, values: np.ndarray) -> np.ndarray:
        return values.copy()
