from ._base import ArrayBackend
from ._cpu import CPUBackend
from ._cuda import CudaBackend, load_cupy
from ._kernels import ARRAY_KERNELS, KernelInput, array_kernel

__all__ = [
    ArrayBackend.__name__,
    CPUBackend.__name__,
    CudaBackend.__name__,
    load_cupy.__name__,
    "ARRAY_KERNELS",
    KernelInput.__name__,
    array_kernel.__name__,
]
