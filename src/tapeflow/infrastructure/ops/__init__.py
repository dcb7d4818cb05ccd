from ._arithmetic import (
    add,
    add_strict,
    div,
    div_strict,
    maximum,
    minimum,
    mul,
    mul_strict,
    neg,
    pow,
    sub,
    sub_strict,
)
from ._compare import (
    equal,
    equal_strict,
    greater,
    greater_equal,
    greater_equal_strict,
    greater_strict,
    less,
    less_equal,
    less_equal_strict,
    less_strict,
    not_equal,
    not_equal_strict,
)
from ._creation import (
    fill,
    ones,
    ones_like,
    scalar,
    tensor,
    variable,
    zeros,
    zeros_like,
)
from ._linalg import (
    conv2d,
    conv2d_backprop_filter,
    conv2d_backprop_input,
    matmul,
)
from ._logical import logical_and, logical_not, logical_or, logical_xor, where
from ._reduction import argmax, max, mean, min, sum
from ._shape import broadcast_to, cast, reshape, transpose
from ._unary import abs, exp, log, relu, sigmoid, sqrt, square, tanh

__all__ = [
    # arithmetic
    add.__name__,
    add_strict.__name__,
    div.__name__,
    div_strict.__name__,
    maximum.__name__,
    minimum.__name__,
    mul.__name__,
    mul_strict.__name__,
    neg.__name__,
    pow.__name__,
    sub.__name__,
    sub_strict.__name__,
    # comparison
    equal.__name__,
    equal_strict.__name__,
    greater.__name__,
    greater_equal.__name__,
    greater_equal_strict.__name__,
    greater_strict.__name__,
    less.__name__,
    less_equal.__name__,
    less_equal_strict.__name__,
    less_strict.__name__,
    not_equal.__name__,
    not_equal_strict.__name__,
    # creation
    fill.__name__,
    ones.__name__,
    ones_like.__name__,
    scalar.__name__,
    tensor.__name__,
    variable.__name__,
    zeros.__name__,
    zeros_like.__name__,
    # linear algebra
    conv2d.__name__,
    conv2d_backprop_filter.__name__,
    conv2d_backprop_input.__name__,
    matmul.__name__,
    # logical
    logical_and.__name__,
    logical_not.__name__,
    logical_or.__name__,
    logical_xor.__name__,
    where.__name__,
    # reduction
    argmax.__name__,
    max.__name__,
    mean.__name__,
    min.__name__,
    sum.__name__,
    # shape
    broadcast_to.__name__,
    cast.__name__,
    reshape.__name__,
    transpose.__name__,
    # unary
    abs.__name__,
    exp.__name__,
    log.__name__,
    relu.__name__,
    sigmoid.__name__,
    sqrt.__name__,
    square.__name__,
    tanh.__name__,
]
