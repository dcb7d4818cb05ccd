import unittest

import numpy as np

import tapeflow as tf
from tapeflow import NAN_BOOL, NAN_INT32, DType, Engine, ShapeMismatchError


class _EngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine()

    def tensor(self, values, dtype=None) -> tf.Tensor:
        return tf.tensor(values, dtype=dtype, engine=self.engine)


class TestReductions(_EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.v = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        self.x = self.tensor(self.v)

    def test_sum_all_axes(self) -> None:
        out = tf.sum(self.x)
        self.assertEqual(out.shape, ())
        self.assertAlmostEqual(out.item(), float(self.v.sum()))

    def test_sum_axis_keepdims(self) -> None:
        out = tf.sum(self.x, axis=1, keepdims=True)
        self.assertEqual(out.shape, (2, 1, 4))
        np.testing.assert_allclose(out.to_numpy(), self.v.sum(axis=1, keepdims=True))

    def test_mean_max_min_multiple_axes(self) -> None:
        np.testing.assert_allclose(tf.mean(self.x, axis=(0, 2)).to_numpy(), self.v.mean(axis=(0, 2)))
        np.testing.assert_allclose(tf.max(self.x, axis=-1).to_numpy(), self.v.max(axis=-1))
        np.testing.assert_allclose(tf.min(self.x, axis=0).to_numpy(), self.v.min(axis=0))

    def test_int_sum_keeps_dtype_mean_is_float(self) -> None:
        x = self.tensor([[1, 2], [3, 4]], "int32")
        s = tf.sum(x, axis=0)
        self.assertIs(s.dtype, DType.INT32)
        np.testing.assert_array_equal(s.to_numpy(), [4, 6])
        m = tf.mean(x)
        self.assertIs(m.dtype, DType.FLOAT32)
        self.assertAlmostEqual(m.item(), 2.5)

    def test_int_nan_propagates_through_reductions(self) -> None:
        x = self.tensor([[1, NAN_INT32], [3, 4]], "int32")
        np.testing.assert_array_equal(tf.sum(x, axis=1).to_numpy(), [NAN_INT32, 7])
        np.testing.assert_array_equal(tf.max(x, axis=1).to_numpy(), [NAN_INT32, 4])
        np.testing.assert_array_equal(tf.min(x, axis=0).to_numpy(), [1, NAN_INT32])
        mean = tf.mean(x, axis=1).to_numpy()
        self.assertTrue(np.isnan(mean[0]))
        self.assertAlmostEqual(float(mean[1]), 3.5)

    def test_max_min_over_empty_extent(self) -> None:
        empty = self.tensor(np.zeros((0,), np.float32))
        self.assertEqual(tf.max(empty).item(), float("-inf"))
        self.assertEqual(tf.min(empty).item(), float("inf"))
        rows = self.tensor(np.zeros((2, 0), np.int32), "int32")
        out = tf.max(rows, axis=1)
        self.assertEqual(out.shape, (2,))
        np.testing.assert_array_equal(out.to_numpy(), [NAN_INT32 + 1] * 2)
        np.testing.assert_array_equal(tf.min(rows, axis=1).to_numpy(), [2**31 - 1] * 2)
        self.assertEqual(tf.max(rows, axis=0).shape, (0,))

    def test_argmax(self) -> None:
        x = self.tensor([[1.0, 5.0, 5.0], [7.0, 0.0, 2.0]])
        out = tf.argmax(x)
        self.assertIs(out.dtype, DType.INT32)
        np.testing.assert_array_equal(out.to_numpy(), [1, 0])
        np.testing.assert_array_equal(tf.argmax(x, axis=0).to_numpy(), [1, 0, 0])

    def test_invalid_axis_raises(self) -> None:
        with self.assertRaises(ValueError):
            tf.sum(self.x, axis=3)

    def test_method_sugar(self) -> None:
        self.assertAlmostEqual(self.x.sum().item(), float(self.v.sum()))
        np.testing.assert_allclose(self.x.mean(axis=0).to_numpy(), self.v.mean(axis=0))


class TestShapeOps(_EngineTestCase):
    def test_reshape_infers_dimension(self) -> None:
        x = self.tensor(np.arange(6, dtype=np.float32))
        out = tf.reshape(x, (2, -1))
        self.assertEqual(out.shape, (2, 3))
        self.assertEqual(x.reshape(3, 2).shape, (3, 2))

    def test_reshape_size_mismatch(self) -> None:
        x = self.tensor(np.arange(6, dtype=np.float32))
        with self.assertRaises(ValueError):
            tf.reshape(x, (4, 2))
        with self.assertRaises(ValueError):
            tf.reshape(x, (4, -1))

    def test_transpose(self) -> None:
        v = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        x = self.tensor(v)
        np.testing.assert_array_equal(tf.transpose(x).to_numpy(), v.T)
        np.testing.assert_array_equal(
            tf.transpose(x, (1, 0, 2)).to_numpy(), v.transpose(1, 0, 2)
        )
        with self.assertRaises(ValueError):
            tf.transpose(x, (0, 0, 1))

    def test_broadcast_to(self) -> None:
        x = self.tensor([[1.0], [2.0]])
        out = tf.broadcast_to(x, (3, 2, 4))
        self.assertEqual(out.shape, (3, 2, 4))
        np.testing.assert_array_equal(out.to_numpy()[2, 1], [2.0] * 4)
        with self.assertRaises(ShapeMismatchError):
            tf.broadcast_to(x, (3, 4))
        with self.assertRaises(ShapeMismatchError):
            tf.broadcast_to(x, (2,))

    def test_cast_preserves_nan(self) -> None:
        x = self.tensor([1.7, -2.2, float("nan"), 0.0])
        as_int = tf.cast(x, "int32")
        self.assertIs(as_int.dtype, DType.INT32)
        np.testing.assert_array_equal(as_int.to_numpy(), [1, -2, NAN_INT32, 0])
        as_bool = tf.cast(x, DType.BOOL)
        np.testing.assert_array_equal(as_bool.to_numpy(), [1, 1, NAN_BOOL, 0])
        back = tf.cast(as_int, "float32").to_numpy()
        np.testing.assert_array_equal(back[[0, 1, 3]], [1.0, -2.0, 0.0])
        self.assertTrue(np.isnan(back[2]))


class TestCreationOps(_EngineTestCase):
    def test_fill_zeros_ones(self) -> None:
        z = tf.zeros((2, 2), engine=self.engine)
        o = tf.ones((3,), "int32", engine=self.engine)
        f = tf.fill((2,), True, engine=self.engine)
        np.testing.assert_array_equal(z.to_numpy(), np.zeros((2, 2)))
        np.testing.assert_array_equal(o.to_numpy(), [1, 1, 1])
        self.assertIs(o.dtype, DType.INT32)
        self.assertIs(f.dtype, DType.BOOL)
        np.testing.assert_array_equal(tf.ones_like(z).to_numpy(), np.ones((2, 2)))
        np.testing.assert_array_equal(tf.zeros_like(o).to_numpy(), [0, 0, 0])

    def test_fill_nan_uses_sentinel(self) -> None:
        out = tf.fill((2,), float("nan"), "int32", engine=self.engine)
        np.testing.assert_array_equal(out.to_numpy(), [NAN_INT32, NAN_INT32])

    def test_negative_dimension_rejected(self) -> None:
        with self.assertRaises(ValueError):
            tf.zeros((2, -1), engine=self.engine)

    def test_tensor_with_shape(self) -> None:
        t = tf.tensor([1, 2, 3, 4], shape=(2, 2), dtype="int32", engine=self.engine)
        self.assertEqual(t.shape, (2, 2))
        self.assertEqual(t.tolist(), [[1, 2], [3, 4]])
        with self.assertRaises(ValueError):
            tf.tensor([1, 2, 3], shape=(2, 2), engine=self.engine)

    def test_scalar(self) -> None:
        s = tf.scalar(3.5, engine=self.engine)
        self.assertEqual(s.shape, ())
        self.assertEqual(s.item(), 3.5)
        with self.assertRaises(ValueError):
            tf.scalar([1.0, 2.0], engine=self.engine)

    def test_ragged_values_rejected(self) -> None:
        with self.assertRaises(ValueError):
            tf.tensor([[1.0, 2.0], [3.0]], engine=self.engine)


if __name__ == "__main__":
    unittest.main()
