import unittest

import numpy as np

import tapeflow as tf
from tapeflow import Engine, GradientError, ShapeMismatchError, TypeMismatchError, Variable


class TestVariable(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine()

    def variable(self, initial, **kwargs) -> Variable:
        return tf.variable(initial, engine=self.engine, **kwargs)

    def test_auto_names_are_unique(self) -> None:
        a = self.variable([1.0])
        b = self.variable([2.0])
        self.assertNotEqual(a.name, b.name)
        self.assertTrue(a.name.startswith("Variable_"))

    def test_duplicate_name(self) -> None:
        self.variable([1.0], name="w")
        with self.assertRaises(ValueError):
            self.variable([2.0], name="w")

    def test_name_reusable_after_dispose(self) -> None:
        w = self.variable([1.0], name="w")
        w.dispose()
        again = self.variable([3.0], name="w")
        np.testing.assert_allclose(again.to_numpy(), [3.0])

    def test_initial_tensor_is_copied(self) -> None:
        t = tf.tensor([1.0, 2.0], engine=self.engine)
        v = self.variable(t)
        t.dispose()
        np.testing.assert_allclose(v.to_numpy(), [1.0, 2.0])

    def test_assign(self) -> None:
        v = self.variable([1.0, 2.0])
        new = tf.tensor([5.0, 6.0], engine=self.engine)
        self.assertIs(v.assign(new), v)
        new.dispose()
        np.testing.assert_allclose(v.to_numpy(), [5.0, 6.0])

    def test_assign_checks_dtype_and_shape(self) -> None:
        v = self.variable([1.0, 2.0])
        with self.assertRaises(TypeMismatchError):
            v.assign(tf.tensor([1, 2], dtype="int32", engine=self.engine))
        with self.assertRaises(ShapeMismatchError):
            v.assign(tf.tensor([1.0, 2.0, 3.0], engine=self.engine))

    def test_assign_keeps_memory_constant(self) -> None:
        v = self.variable([1.0, 2.0])
        before = self.engine.memory()
        for i in range(3):
            with self.engine.scope_guard():
                v.assign(tf.tensor([float(i), 0.0], engine=self.engine))
        self.assertEqual(self.engine.memory(), before)

    def test_untouched_by_scopes(self) -> None:
        def body():
            v = self.variable([1.0])
            return None

        self.engine.tidy(body)
        (v,) = self.engine.variables.values()
        self.assertFalse(v.is_disposed)

    def test_variable_is_a_tensor(self) -> None:
        v = self.variable([[1.0, 2.0]])
        out = v * 2.0
        self.assertNotIsInstance(out, Variable)
        np.testing.assert_allclose(out.to_numpy(), [[2.0, 4.0]])


class TestVariableGrads(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine()
        self.w = tf.variable([1.0, 2.0], name="w", engine=self.engine)
        self.b = tf.variable([0.5], name="b", engine=self.engine)
        self.frozen = tf.variable([3.0], name="frozen", trainable=False, engine=self.engine)
        self.x = tf.tensor([3.0, 4.0], engine=self.engine)

    def loss(self) -> tf.Tensor:
        return tf.sum(self.w * self.x + self.b * self.frozen)

    def test_trainable_variables_by_default(self) -> None:
        value, grads = self.engine.variable_grads(self.loss)
        self.assertAlmostEqual(value.item(), 3.0 + 8.0 + 3.0)
        self.assertEqual(sorted(grads), ["b", "w"])
        np.testing.assert_allclose(grads["w"].to_numpy(), [3.0, 4.0])
        np.testing.assert_allclose(grads["b"].to_numpy(), [6.0])

    def test_explicit_var_list(self) -> None:
        _, grads = self.engine.variable_grads(self.loss, [self.frozen])
        np.testing.assert_allclose(grads["frozen"].to_numpy(), [1.0])

    def test_unconnected_variables_are_omitted(self) -> None:
        _, grads = self.engine.variable_grads(lambda: tf.sum(self.w * self.x))
        self.assertEqual(list(grads), ["w"])

    def test_no_connection(self) -> None:
        with self.assertRaises(GradientError):
            self.engine.variable_grads(lambda: tf.sum(self.x), [self.w])

    def test_loss_must_be_scalar(self) -> None:
        with self.assertRaises(ValueError):
            self.engine.variable_grads(lambda: self.w * self.x)


if __name__ == "__main__":
    unittest.main()
