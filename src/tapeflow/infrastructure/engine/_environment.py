"""
Process-wide default engine.

The module-level API of `tapeflow` (``tf.tensor``, ``tf.tidy``, ...) and the
operation wrappers fall back to this engine when no tensor argument pins
one. It is created on first use from `EngineConfig.from_env`, so
``TAPEFLOW_*`` environment variables configure it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ._engine import Engine

logger = logging.getLogger(__name__)

_ENGINE: Optional["Engine"] = None


def get_engine() -> "Engine":
    """Return the default engine, creating it from the environment if needed."""
    global _ENGINE
    if _ENGINE is None:
        from .._config import EngineConfig
        from ._engine import Engine

        _ENGINE = Engine(EngineConfig.from_env())
        logger.debug("Created default engine (backend=%r)", _ENGINE.config.backend)
    return _ENGINE


def set_engine(engine: Optional["Engine"]) -> Optional["Engine"]:
    """
    Replace the default engine and return the previous one.

    Passing None makes the next `get_engine` call build a fresh engine.
    """
    global _ENGINE
    previous, _ENGINE = _ENGINE, engine
    return previous
