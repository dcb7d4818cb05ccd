from ._broadcast import (
    assert_and_get_broadcast_shape,
    assert_shapes_match,
    get_broadcast_dims,
    get_reduction_axes,
    infer_shape,
    normalize_axes,
    reduced_shape,
    size_from_shape,
)

__all__ = [
    assert_and_get_broadcast_shape.__name__,
    assert_shapes_match.__name__,
    get_broadcast_dims.__name__,
    get_reduction_axes.__name__,
    infer_shape.__name__,
    normalize_axes.__name__,
    reduced_shape.__name__,
    size_from_shape.__name__,
]
