import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from tapeflow.infrastructure._config import EngineConfig, env_flag


class TestEnvFlag(unittest.TestCase):
    def test_unset_uses_default(self) -> None:
        self.assertFalse(env_flag("X", environ={}))
        self.assertTrue(env_flag("X", True, environ={}))

    def test_off_values(self) -> None:
        for raw in ("0", "", "false", "FALSE", "no", "off", " 0 "):
            self.assertFalse(env_flag("X", True, environ={"X": raw}), raw)

    def test_on_values(self) -> None:
        for raw in ("1", "true", "yes", "on"):
            self.assertTrue(env_flag("X", environ={"X": raw}), raw)


class TestEngineConfigFromEnv(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = EngineConfig.from_env(environ={})
        self.assertEqual(cfg, EngineConfig())
        self.assertEqual(cfg.backend, "cpu")
        self.assertFalse(cfg.debug)
        self.assertFalse(cfg.strict_kernels)
        self.assertEqual(cfg.cuda_device, 0)

    def test_reads_variables(self) -> None:
        cfg = EngineConfig.from_env(
            environ={
                "TAPEFLOW_BACKEND": "cuda",
                "TAPEFLOW_DEBUG": "1",
                "TAPEFLOW_STRICT_KERNELS": "true",
                "TAPEFLOW_CUDA_DEVICE": "2",
            }
        )
        self.assertEqual(cfg.backend, "cuda")
        self.assertTrue(cfg.debug)
        self.assertTrue(cfg.strict_kernels)
        self.assertEqual(cfg.cuda_device, 2)

    def test_invalid_device_raises(self) -> None:
        with self.assertRaises(ValueError):
            EngineConfig.from_env(environ={"TAPEFLOW_CUDA_DEVICE": "gpu0"})
        with self.assertRaises(ValueError):
            EngineConfig.from_env(environ={"TAPEFLOW_CUDA_DEVICE": "-1"})

    def test_dotenv_file_is_loaded(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text("TAPEFLOW_DEBUG=1\nTAPEFLOW_BACKEND=cpu\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {}, clear=True):
                cfg = EngineConfig.from_env(dotenv_path=path)
        self.assertTrue(cfg.debug)
        self.assertEqual(cfg.backend, "cpu")

    def test_process_environment_wins_over_dotenv(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text("TAPEFLOW_DEBUG=1\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {"TAPEFLOW_DEBUG": "0"}, clear=True):
                cfg = EngineConfig.from_env(dotenv_path=path)
        self.assertFalse(cfg.debug)


if __name__ == "__main__":
    unittest.main()
