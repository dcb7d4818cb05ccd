from ._engine import Engine, GradientTape, MemoryInfo, TimingInfo
from ._environment import get_engine, set_engine
from ._scope import ScopeGuard, ScopeManager, iter_tensors
from ._tape import Tape, TapeNode, backpropagate, filter_tape

__all__ = [
    Engine.__name__,
    GradientTape.__name__,
    MemoryInfo.__name__,
    TimingInfo.__name__,
    get_engine.__name__,
    set_engine.__name__,
    ScopeGuard.__name__,
    ScopeManager.__name__,
    iter_tensors.__name__,
    Tape.__name__,
    TapeNode.__name__,
    backpropagate.__name__,
    filter_tape.__name__,
]
