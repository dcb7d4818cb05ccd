import unittest

import numpy as np

import tapeflow as tf
from tapeflow import Engine, ShapeMismatchError, TypeMismatchError


def conv2d_reference(x: np.ndarray, w: np.ndarray, stride=(1, 1), padding=(0, 0)) -> np.ndarray:
    """Naive NCHW / OIHW cross-correlation."""
    s_h, s_w = stride
    p_h, p_w = padding
    x_pad = np.pad(x, ((0, 0), (0, 0), (p_h, p_h), (p_w, p_w)))
    N, _, H, W = x_pad.shape
    C_out, _, K_h, K_w = w.shape
    H_out = (H - K_h) // s_h + 1
    W_out = (W - K_w) // s_w + 1
    y = np.zeros((N, C_out, H_out, W_out), dtype=np.float64)
    for n in range(N):
        for o in range(C_out):
            for i in range(H_out):
                for j in range(W_out):
                    patch = x_pad[n, :, i * s_h : i * s_h + K_h, j * s_w : j * s_w + K_w]
                    y[n, o, i, j] = np.sum(patch * w[o])
    return y.astype(np.float32)


class _EngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine()
        self.rng = np.random.default_rng(42)

    def tensor(self, values, dtype=None) -> tf.Tensor:
        return tf.tensor(values, dtype=dtype, engine=self.engine)

    def randn(self, *shape) -> np.ndarray:
        return self.rng.standard_normal(shape).astype(np.float32)


class TestMatmul(_EngineTestCase):
    def test_transpose_flags(self) -> None:
        a = self.randn(3, 4)
        b = self.randn(4, 5)
        cases = [
            (a, b, False, False),
            (a, b.T.copy(), False, True),
            (a.T.copy(), b, True, False),
            (a.T.copy(), b.T.copy(), True, True),
        ]
        for lhs, rhs, ta, tb in cases:
            out = tf.matmul(self.tensor(lhs), self.tensor(rhs), ta, tb)
            np.testing.assert_allclose(out.to_numpy(), a @ b, rtol=1e-5, atol=1e-5)

    def test_batched(self) -> None:
        a = self.randn(2, 3, 4)
        b = self.randn(2, 4, 2)
        out = self.tensor(a) @ self.tensor(b)
        self.assertEqual(out.shape, (2, 3, 2))
        np.testing.assert_allclose(out.to_numpy(), a @ b, rtol=1e-5, atol=1e-5)

    def test_inner_dimension_mismatch(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            tf.matmul(self.tensor(self.randn(2, 3)), self.tensor(self.randn(2, 3)))

    def test_rank_one_rejected(self) -> None:
        with self.assertRaises(ShapeMismatchError):
            tf.matmul(self.tensor(self.randn(3)), self.tensor(self.randn(3, 2)))

    def test_int_rejected(self) -> None:
        a = self.tensor([[1, 2]], "int32")
        b = self.tensor([[1], [2]], "int32")
        with self.assertRaises(TypeMismatchError):
            tf.matmul(a, b)


class TestConv2D(_EngineTestCase):
    def test_matches_reference(self) -> None:
        x = self.randn(2, 3, 7, 6)
        w = self.randn(4, 3, 3, 2)
        for stride, padding in [((1, 1), (0, 0)), ((2, 1), (1, 0)), ((2, 2), (1, 1))]:
            out = tf.conv2d(self.tensor(x), self.tensor(w), stride, padding)
            np.testing.assert_allclose(
                out.to_numpy(),
                conv2d_reference(x, w, stride, padding),
                rtol=1e-4,
                atol=1e-4,
            )

    def test_same_and_valid_padding(self) -> None:
        x = self.randn(1, 2, 5, 5)
        w = self.randn(3, 2, 3, 3)
        same = tf.conv2d(self.tensor(x), self.tensor(w), 1, "same")
        self.assertEqual(same.shape, (1, 3, 5, 5))
        np.testing.assert_allclose(
            same.to_numpy(), conv2d_reference(x, w, padding=(1, 1)), rtol=1e-4, atol=1e-4
        )
        valid = tf.conv2d(self.tensor(x), self.tensor(w), 1, "valid")
        self.assertEqual(valid.shape, (1, 3, 3, 3))

    def test_same_padding_requires_even_total(self) -> None:
        x = self.tensor(self.randn(1, 1, 4, 4))
        w = self.tensor(self.randn(1, 1, 2, 2))
        with self.assertRaises(ValueError):
            tf.conv2d(x, w, 1, "same")

    def test_channel_mismatch(self) -> None:
        x = self.tensor(self.randn(1, 2, 4, 4))
        w = self.tensor(self.randn(1, 3, 2, 2))
        with self.assertRaises(ShapeMismatchError):
            tf.conv2d(x, w)

    def test_filter_larger_than_input(self) -> None:
        x = self.tensor(self.randn(1, 1, 2, 2))
        w = self.tensor(self.randn(1, 1, 3, 3))
        with self.assertRaises(ShapeMismatchError):
            tf.conv2d(x, w)

    def test_unknown_padding_string(self) -> None:
        x = self.tensor(self.randn(1, 1, 4, 4))
        w = self.tensor(self.randn(1, 1, 3, 3))
        with self.assertRaises(ValueError):
            tf.conv2d(x, w, 1, "full")


if __name__ == "__main__":
    unittest.main()
