"""
Infrastructure layer: backends, tensors, the engine, gradients and ops.
"""

# the engine pulls in the gradient functions, which are built on the ops
from .engine import Engine, GradientTape, MemoryInfo, TimingInfo, get_engine, set_engine
from ._config import EngineConfig
from .backends import ArrayBackend, CPUBackend, CudaBackend
from .gradients import GRADIENTS, GradientRegistry, register_gradient
from .tensor import Tensor, Variable

__all__ = [
    Engine.__name__,
    GradientTape.__name__,
    MemoryInfo.__name__,
    TimingInfo.__name__,
    get_engine.__name__,
    set_engine.__name__,
    EngineConfig.__name__,
    ArrayBackend.__name__,
    CPUBackend.__name__,
    CudaBackend.__name__,
    "GRADIENTS",
    GradientRegistry.__name__,
    "register_gradient",
    Tensor.__name__,
    Variable.__name__,
]
