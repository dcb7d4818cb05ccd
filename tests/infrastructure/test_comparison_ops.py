import unittest
from unittest import mock

import numpy as np

import tapeflow as tf
from tapeflow import NAN_BOOL, NAN_INT32, DType, Engine, ShapeMismatchError, TypeMismatchError


class _EngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine()

    def tensor(self, values, dtype=None) -> tf.Tensor:
        return tf.tensor(values, dtype=dtype, engine=self.engine)


class TestComparisonScenarios(_EngineTestCase):
    def test_int32_equal_less_greater_equal(self) -> None:
        a = self.tensor([1, 4, 5], "int32")
        b = self.tensor([2, 3, 5], "int32")

        eq = tf.equal(a, b)
        self.assertIs(eq.dtype, DType.BOOL)
        self.assertEqual(eq.shape, (3,))
        np.testing.assert_array_equal(eq.to_numpy(), [0, 0, 1])
        np.testing.assert_array_equal(tf.less(a, b).to_numpy(), [1, 0, 0])
        np.testing.assert_array_equal(tf.greater_equal(a, b).to_numpy(), [0, 1, 1])

    def test_less_broadcasts_column_against_matrix(self) -> None:
        a = self.tensor([[1.0], [2.0]])
        b = self.tensor([[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])
        out = tf.less(a, b)
        self.assertEqual(out.shape, (2, 3))
        np.testing.assert_array_equal(out.to_numpy(), [[0, 1, 1], [0, 0, 1]])

    def test_less_strict_fails_before_dispatch(self) -> None:
        a = self.tensor([[1.0], [2.0]])
        b = self.tensor([[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])
        backend = self.engine.backend
        with mock.patch.object(backend, "run", wraps=backend.run) as run:
            with self.assertRaises(ShapeMismatchError) as cm:
                tf.less_strict(a, b)
        run.assert_not_called()
        self.assertIn("LessStrict", str(cm.exception))

    def test_strict_variants_accept_equal_shapes(self) -> None:
        a = self.tensor([1.0, 2.0])
        b = self.tensor([2.0, 2.0])
        np.testing.assert_array_equal(tf.equal_strict(a, b).to_numpy(), [0, 1])
        np.testing.assert_array_equal(tf.not_equal_strict(a, b).to_numpy(), [1, 0])
        np.testing.assert_array_equal(tf.less_equal_strict(a, b).to_numpy(), [1, 1])
        np.testing.assert_array_equal(tf.greater_strict(a, b).to_numpy(), [0, 0])
        np.testing.assert_array_equal(tf.greater_equal_strict(a, b).to_numpy(), [0, 1])


class TestComparisonSemantics(_EngineTestCase):
    def test_not_equal_is_complement_of_equal(self) -> None:
        rng = np.random.default_rng(0)
        a = self.tensor(rng.integers(0, 3, size=(4, 5)).astype(np.int32))
        b = self.tensor(rng.integers(0, 3, size=(1, 5)).astype(np.int32))
        eq = tf.equal(a, b).to_numpy()
        ne = tf.not_equal(a, b).to_numpy()
        np.testing.assert_array_equal(eq + ne, np.ones((4, 5), dtype=np.uint8))

    def test_float_nan_gives_bool_nan(self) -> None:
        a = self.tensor([1.0, float("nan"), 3.0])
        b = self.tensor([1.0, 1.0, float("nan")])
        np.testing.assert_array_equal(tf.equal(a, b).to_numpy(), [1, NAN_BOOL, NAN_BOOL])
        np.testing.assert_array_equal(tf.not_equal(a, b).to_numpy(), [0, NAN_BOOL, NAN_BOOL])

    def test_int_sentinel_gives_bool_nan(self) -> None:
        a = self.tensor([NAN_INT32, 2], "int32")
        b = self.tensor([0, 1], "int32")
        np.testing.assert_array_equal(tf.greater(a, b).to_numpy(), [NAN_BOOL, 1])

    def test_bool_operands_compare(self) -> None:
        a = self.tensor([True, False])
        b = self.tensor([True, True])
        np.testing.assert_array_equal(tf.equal(a, b).to_numpy(), [1, 0])

    def test_python_scalar_adopts_tensor_dtype(self) -> None:
        a = self.tensor([1, 2, 3], "int32")
        out = tf.less(a, 2)
        np.testing.assert_array_equal(out.to_numpy(), [1, 0, 0])

    def test_mixed_dtypes_raise(self) -> None:
        a = self.tensor([1, 2], "int32")
        b = self.tensor([1.0, 2.0])
        with self.assertRaises(TypeMismatchError):
            tf.equal(a, b)

    def test_incompatible_shapes_raise(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            tf.less(self.tensor([1.0, 2.0]), self.tensor([1.0, 2.0, 3.0]))

    def test_operators_map_to_kernels(self) -> None:
        a = self.tensor([1.0, 2.0, 3.0])
        np.testing.assert_array_equal((a < 2.0).to_numpy(), [1, 0, 0])
        np.testing.assert_array_equal((a <= 2.0).to_numpy(), [1, 1, 0])
        np.testing.assert_array_equal((a > 2.0).to_numpy(), [0, 0, 1])
        np.testing.assert_array_equal((a >= 2.0).to_numpy(), [0, 1, 1])
        np.testing.assert_array_equal(a.equal(2.0).to_numpy(), [0, 1, 0])

    def test_equality_operator_keeps_identity(self) -> None:
        a = self.tensor([1.0])
        b = self.tensor([1.0])
        self.assertTrue(a == a)
        self.assertFalse(a == b)
        self.assertEqual(len({a, b}), 2)

    def test_truthiness_is_ambiguous(self) -> None:
        with self.assertRaises(TypeError):
            bool(self.tensor([1.0]) < 2.0)


if __name__ == "__main__":
    unittest.main()
