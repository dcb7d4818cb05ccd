import asyncio
import unittest

import numpy as np

from tapeflow.domain import AlreadyDisposedError, DType, Kernel, UnimplementedKernelError
from tapeflow.infrastructure.backends import ARRAY_KERNELS, CPUBackend


class TestCPUBackendStorage(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = CPUBackend()

    def test_write_read_round_trip_copies(self) -> None:
        host = np.array([1.0, 2.0], dtype=np.float32)
        data_id = self.backend.write(host, DType.FLOAT32)
        host[0] = 100.0
        out = self.backend.read(data_id)
        np.testing.assert_array_equal(out, [1.0, 2.0])
        out[1] = -1.0
        np.testing.assert_array_equal(self.backend.read(data_id), [1.0, 2.0])

    def test_stale_handle_after_slot_reuse(self) -> None:
        first = self.backend.write(np.zeros(3, np.float32), DType.FLOAT32)
        self.backend.dispose_data(first)
        second = self.backend.write(np.ones(3, np.float32), DType.FLOAT32)
        self.assertEqual(first.slot, second.slot)
        self.assertNotEqual(first.generation, second.generation)
        self.assertFalse(self.backend.is_live(first))
        with self.assertRaises(AlreadyDisposedError):
            self.backend.read(first)
        np.testing.assert_array_equal(self.backend.read(second), [1.0, 1.0, 1.0])

    def test_handle_from_replaced_instance_never_resolves(self) -> None:
        first = self.backend.write(np.zeros(2, np.float32), DType.FLOAT32)
        self.backend.dispose()
        replacement = CPUBackend()
        second = replacement.write(np.ones(2, np.float32), DType.FLOAT32)
        self.assertEqual((first.slot, first.generation), (second.slot, second.generation))
        self.assertNotEqual(first.epoch, second.epoch)
        self.assertFalse(replacement.is_live(first))
        replacement.dispose_data(first)
        np.testing.assert_array_equal(replacement.read(second), [1.0, 1.0])

    def test_double_dispose_is_noop(self) -> None:
        data_id = self.backend.write(np.zeros(2, np.int32), DType.INT32)
        self.backend.dispose_data(data_id)
        self.backend.dispose_data(data_id)
        self.assertEqual(self.backend.memory().num_buffers, 0)

    def test_memory_accounting(self) -> None:
        a = self.backend.write(np.zeros(4, np.float32), DType.FLOAT32)
        self.backend.write(np.zeros(2, np.uint8), DType.BOOL)
        info = self.backend.memory()
        self.assertEqual(info.num_buffers, 2)
        self.assertEqual(info.num_bytes, 18)
        self.backend.dispose_data(a)
        self.assertEqual(self.backend.memory().num_bytes, 2)

    def test_read_async(self) -> None:
        data_id = self.backend.write(np.array([3, 4], np.int32), DType.INT32)
        out = asyncio.run(self.backend.read_async(data_id))
        np.testing.assert_array_equal(out, [3, 4])

    def test_dispose_backend_releases_everything(self) -> None:
        data_id = self.backend.write(np.zeros(4, np.float32), DType.FLOAT32)
        self.backend.dispose()
        self.assertEqual(self.backend.memory().num_buffers, 0)
        self.assertFalse(self.backend.is_live(data_id))


class TestCPUBackendRun(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = CPUBackend()

    def test_run_add(self) -> None:
        a = self.backend.write(np.array([[1.0], [2.0]], np.float32), DType.FLOAT32)
        b = self.backend.write(np.array([10.0, 20.0, 30.0], np.float32), DType.FLOAT32)
        out, shape = self.backend.run(Kernel.ADD, {"a": a, "b": b}, {}, DType.FLOAT32)
        self.assertEqual(shape, (2, 3))
        np.testing.assert_array_equal(
            self.backend.read(out), [[11.0, 21.0, 31.0], [12.0, 22.0, 32.0]]
        )

    def test_reshape_output_owns_its_buffer(self) -> None:
        x = self.backend.write(np.arange(6, dtype=np.float32), DType.FLOAT32)
        out, shape = self.backend.run(Kernel.RESHAPE, {"x": x}, {"shape": (2, 3)}, DType.FLOAT32)
        self.assertEqual(shape, (2, 3))
        self.backend.dispose_data(x)
        np.testing.assert_array_equal(self.backend.read(out).ravel(), np.arange(6))

    def test_partial_kernel_table(self) -> None:
        partial = CPUBackend(kernel_table={Kernel.ADD: ARRAY_KERNELS[Kernel.ADD]})
        self.assertEqual(partial.kernels(), frozenset({Kernel.ADD}))
        x = partial.write(np.zeros(2, np.float32), DType.FLOAT32)
        with self.assertRaises(UnimplementedKernelError):
            partial.run(Kernel.NEG, {"x": x}, {}, DType.FLOAT32)

    def test_generic_table_covers_catalog(self) -> None:
        self.assertEqual(self.backend.kernels(), frozenset(Kernel))

    def test_has_nan(self) -> None:
        clean = self.backend.write(np.array([1, 2], np.int32), DType.INT32)
        dirty = self.backend.write(np.array([1, -(2**31)], np.int32), DType.INT32)
        self.assertFalse(self.backend.has_nan(clean, DType.INT32))
        self.assertTrue(self.backend.has_nan(dirty, DType.INT32))


if __name__ == "__main__":
    unittest.main()
