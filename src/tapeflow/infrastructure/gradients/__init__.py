from ._registry import GRADIENTS, GradientRegistry, register_gradient

# populate GRADIENTS
from . import _arithmetic, _linalg, _reduction, _shape, _unary  # noqa: E402,F401
from ._utils import sum_to_shape  # noqa: E402

__all__ = [
    "GRADIENTS",
    GradientRegistry.__name__,
    "register_gradient",
    sum_to_shape.__name__,
]
