"""
Engine configuration.

Configuration is read from ``TAPEFLOW_*`` environment variables, optionally
seeded from a ``.env`` file through python-dotenv. Values already present in
the process environment win over the file.

Variables
---------
TAPEFLOW_BACKEND
    Name of the backend activated by the default engine (default ``cpu``).
TAPEFLOW_DEBUG
    When on, every kernel output is checked for NaN and a
    `NaNDetectedError` is raised on the first hit.
TAPEFLOW_STRICT_KERNELS
    When on, instantiating a backend that does not implement the whole
    kernel catalog raises instead of warning.
TAPEFLOW_CUDA_DEVICE
    CUDA device index used by the ``cuda`` backend (default 0).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

_FALSE_VALUES = ("0", "", "false", "False", "FALSE", "no", "off")


def env_flag(name: str, default: bool = False, environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Parse a boolean environment flag.

    Unset variables yield `default`; ``"0"``, empty strings, ``"false"``,
    ``"no"`` and ``"off"`` are off; anything else is on.
    """
    env = os.environ if environ is None else environ
    if name not in env:
        return default
    return env[name].strip() not in _FALSE_VALUES


@dataclass
class EngineConfig:
    """
    Mutable engine settings.

    Attributes
    ----------
    backend : str
        Backend name activated when the engine first needs one.
    debug : bool
        Check every kernel output for NaN.
    strict_kernels : bool
        Treat an incomplete backend kernel table as an error.
    cuda_device : int
        CUDA device ordinal for the GPU backend.
    """

    backend: str = "cpu"
    debug: bool = False
    strict_kernels: bool = False
    cuda_device: int = 0

    @classmethod
    def from_env(
        cls,
        dotenv_path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "EngineConfig":
        """
        Build a config from the environment.

        Parameters
        ----------
        dotenv_path : str | Path, optional
            A ``.env`` file to load first (without overriding variables that
            are already set).
        environ : Mapping[str, str], optional
            Mapping to read instead of ``os.environ``; mainly for tests.

        Raises
        ------
        ValueError
            If ``TAPEFLOW_CUDA_DEVICE`` is not a non-negative integer.
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path, override=False)
        env = os.environ if environ is None else environ

        raw_device = env.get("TAPEFLOW_CUDA_DEVICE", "0").strip() or "0"
        try:
            cuda_device = int(raw_device)
        except ValueError:
            raise ValueError(
                f"TAPEFLOW_CUDA_DEVICE must be an integer, got {raw_device!r}"
            ) from None
        if cuda_device < 0:
            raise ValueError(f"TAPEFLOW_CUDA_DEVICE must be >= 0, got {cuda_device}")

        return cls(
            backend=env.get("TAPEFLOW_BACKEND", "cpu").strip() or "cpu",
            debug=env_flag("TAPEFLOW_DEBUG", False, env),
            strict_kernels=env_flag("TAPEFLOW_STRICT_KERNELS", False, env),
            cuda_device=cuda_device,
        )
