import unittest

import numpy as np

from tapeflow.domain import NAN_BOOL, NAN_INT32, DType, as_dtype
from tapeflow.domain._dtype import encode, infer_dtype, is_nan_array, upcast


class TestAsDType(unittest.TestCase):
    def test_names_and_numpy_types(self) -> None:
        self.assertIs(as_dtype("float32"), DType.FLOAT32)
        self.assertIs(as_dtype("int32"), DType.INT32)
        self.assertIs(as_dtype("bool"), DType.BOOL)
        self.assertIs(as_dtype(np.float32), DType.FLOAT32)
        self.assertIs(as_dtype(np.dtype(np.int32)), DType.INT32)
        self.assertIs(as_dtype(np.bool_), DType.BOOL)
        self.assertIs(as_dtype(DType.INT32), DType.INT32)

    def test_unsupported_raises(self) -> None:
        with self.assertRaises(TypeError):
            as_dtype("complex64")
        with self.assertRaises(TypeError):
            as_dtype(np.float64)

    def test_storage(self) -> None:
        self.assertEqual(DType.BOOL.storage, np.uint8)
        self.assertEqual(DType.INT32.itemsize, 4)
        self.assertTrue(DType.FLOAT32.is_floating)
        self.assertFalse(DType.INT32.is_floating)


class TestInferAndUpcast(unittest.TestCase):
    def test_infer(self) -> None:
        self.assertIs(infer_dtype([True, False]), DType.BOOL)
        self.assertIs(infer_dtype(np.array([1, 2], dtype=np.int64)), DType.INT32)
        self.assertIs(infer_dtype([1, 2, 3]), DType.FLOAT32)
        self.assertIs(infer_dtype(2.5), DType.FLOAT32)

    def test_upcast_order(self) -> None:
        self.assertIs(upcast(DType.BOOL, DType.INT32), DType.INT32)
        self.assertIs(upcast(DType.FLOAT32, DType.INT32), DType.FLOAT32)
        self.assertIs(upcast(DType.BOOL, DType.BOOL), DType.BOOL)


class TestEncode(unittest.TestCase):
    def test_float_nan_becomes_int_sentinel(self) -> None:
        out = encode([1.0, float("nan"), 3.0], DType.INT32)
        self.assertEqual(out.dtype, np.int32)
        np.testing.assert_array_equal(out, [1, NAN_INT32, 3])

    def test_float_nan_becomes_bool_sentinel(self) -> None:
        out = encode([0.0, float("nan"), 2.0], DType.BOOL)
        self.assertEqual(out.dtype, np.uint8)
        np.testing.assert_array_equal(out, [0, NAN_BOOL, 1])

    def test_bools_stored_as_uint8(self) -> None:
        np.testing.assert_array_equal(encode([True, False], DType.BOOL), [1, 0])

    def test_uint8_to_bool_normalizes_truthy_values(self) -> None:
        out = encode(np.array([0, 2, 1, NAN_BOOL], dtype=np.uint8), DType.BOOL)
        self.assertEqual(out.dtype, np.uint8)
        np.testing.assert_array_equal(out, [0, 1, 1, NAN_BOOL])

    def test_scalar_stays_zero_dimensional(self) -> None:
        self.assertEqual(encode(3.0, DType.FLOAT32).shape, ())
        self.assertEqual(encode(3, DType.INT32).shape, ())

    def test_is_nan_array(self) -> None:
        np.testing.assert_array_equal(
            is_nan_array(np, np.array([1, NAN_INT32], dtype=np.int32), DType.INT32),
            [False, True],
        )
        np.testing.assert_array_equal(
            is_nan_array(np, np.array([NAN_BOOL, 0], dtype=np.uint8), DType.BOOL),
            [True, False],
        )
        np.testing.assert_array_equal(
            is_nan_array(np, np.array([np.nan, 0.0], dtype=np.float32), DType.FLOAT32),
            [True, False],
        )


if __name__ == "__main__":
    unittest.main()
