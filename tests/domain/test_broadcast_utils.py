import itertools
import unittest

from tapeflow.domain import ShapeMismatchError
from tapeflow.domain.utils import (
    assert_and_get_broadcast_shape,
    assert_shapes_match,
    get_broadcast_dims,
    get_reduction_axes,
    infer_shape,
    normalize_axes,
    reduced_shape,
    size_from_shape,
)


class TestBroadcastShape(unittest.TestCase):
    def test_equal_shapes(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((2, 3), (2, 3)), (2, 3))

    def test_size_one_dimension_expands(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((2, 1), (2, 3)), (2, 3))

    def test_missing_leading_dimensions(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((3,), (4, 2, 3)), (4, 2, 3))
        self.assertEqual(assert_and_get_broadcast_shape((), (5,)), (5,))

    def test_zero_sized_dimension(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((0, 1), (1, 3)), (0, 3))

    def test_incompatible_shapes_raise(self) -> None:
        with self.assertRaises(ShapeMismatchError) as cm:
            assert_and_get_broadcast_shape((2, 3), (4, 3))
        self.assertEqual(cm.exception.shape_a, (2, 3))
        self.assertEqual(cm.exception.shape_b, (4, 3))
        self.assertIn("[2, 3]", str(cm.exception))

    def test_shape_mismatch_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            assert_and_get_broadcast_shape((2,), (3,))

    def test_commutative(self) -> None:
        shapes = [(), (1,), (3,), (2, 1), (1, 3), (2, 3), (4, 1, 3)]
        for a, b in itertools.product(shapes, repeat=2):
            try:
                ab = assert_and_get_broadcast_shape(a, b)
            except ShapeMismatchError:
                with self.assertRaises(ShapeMismatchError):
                    assert_and_get_broadcast_shape(b, a)
                continue
            self.assertEqual(ab, assert_and_get_broadcast_shape(b, a), (a, b))


class TestStrictShapes(unittest.TestCase):
    def test_match_passes(self) -> None:
        assert_shapes_match((2, 3), [2, 3])

    def test_mismatch_uses_prefix(self) -> None:
        with self.assertRaises(ShapeMismatchError) as cm:
            assert_shapes_match((2, 1), (2, 3), "Error in LessStrict: ")
        self.assertTrue(str(cm.exception).startswith("Error in LessStrict: "))

    def test_rank_difference_is_mismatch(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            assert_shapes_match((3,), (1, 3))


class TestReductionHelpers(unittest.TestCase):
    def test_broadcast_dims(self) -> None:
        self.assertEqual(get_broadcast_dims((2, 1), (2, 3)), [1])
        self.assertEqual(get_broadcast_dims((1, 3), (4, 2, 3)), [0])
        self.assertEqual(get_broadcast_dims((3,), (2, 3)), [])

    def test_reduction_axes(self) -> None:
        self.assertEqual(get_reduction_axes((2, 1), (2, 3)), [1])
        self.assertEqual(get_reduction_axes((3,), (4, 2, 3)), [0, 1])
        self.assertEqual(get_reduction_axes((), (2, 2)), [0, 1])
        self.assertEqual(get_reduction_axes((2, 3), (2, 3)), [])

    def test_normalize_axes(self) -> None:
        self.assertEqual(normalize_axes(None, 3), (0, 1, 2))
        self.assertEqual(normalize_axes(-1, 3), (2,))
        self.assertEqual(normalize_axes([2, 0], 3), (0, 2))
        with self.assertRaises(ValueError):
            normalize_axes(3, 3)
        with self.assertRaises(ValueError):
            normalize_axes([1, -2], 3)

    def test_reduced_shape(self) -> None:
        self.assertEqual(reduced_shape((2, 3, 4), (1,), False), (2, 4))
        self.assertEqual(reduced_shape((2, 3, 4), (0, 2), True), (1, 3, 1))


class TestShapeInference(unittest.TestCase):
    def test_size(self) -> None:
        self.assertEqual(size_from_shape(()), 1)
        self.assertEqual(size_from_shape((2, 0, 3)), 0)
        self.assertEqual(size_from_shape((2, 3, 4)), 24)

    def test_infer_nested(self) -> None:
        self.assertEqual(infer_shape([[1, 2, 3], [4, 5, 6]]), (2, 3))
        self.assertEqual(infer_shape(5.0), ())
        self.assertEqual(infer_shape([]), (0,))

    def test_ragged_raises(self) -> None:
        with self.assertRaises(ValueError):
            infer_shape([[1, 2], [3]])


if __name__ == "__main__":
    unittest.main()
