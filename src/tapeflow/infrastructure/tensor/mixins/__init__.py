from ._arithmetic import TensorMixinArithmetic
from ._comparison import TensorMixinComparison
from ._reduction import TensorMixinReduction
from ._shape import TensorMixinShape
from ._unary import TensorMixinUnary

__all__ = [
    TensorMixinArithmetic.__name__,
    TensorMixinComparison.__name__,
    TensorMixinReduction.__name__,
    TensorMixinShape.__name__,
    TensorMixinUnary.__name__,
]
