from ._tensor import Tensor, Variable

__all__ = [Tensor.__name__, Variable.__name__]
