"""
Per-kernel gradient registration.

A `GradientRegistry` maps catalog kernels to gradient functions. Gradient
functions are registered with a decorator, mirroring how backends register
kernel implementations:

    @register_gradient(Kernel.MUL)
    def _mul_grad(dy, node):
        a, b = node.inputs["a"], node.inputs["b"]
        return {"a": lambda: ..., "b": lambda: ...}

Each engine resolves gradients through its own registry, which defaults to
the process-wide `GRADIENTS`. A registry may be built from another one and
then edited, which keeps engines isolated from each other's overrides.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from typing_extensions import TypeVar

from ...domain._kernel import Kernel, as_kernel

if TYPE_CHECKING:
    from ..engine._tape import GradientFn

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class GradientRegistry:
    """
    Mapping from kernel to gradient function.

    Parameters
    ----------
    base : GradientRegistry, optional
        Registry whose entries are copied into this one.
    """

    def __init__(self, base: Optional["GradientRegistry"] = None) -> None:
        self._fns: dict[Kernel, "GradientFn"] = {}
        if base is not None:
            self._fns.update(base._fns)

    def register(self, kernel: Union[Kernel, str]) -> Callable[[F], F]:
        """
        Decorator registering the gradient of `kernel`.

        Registering a kernel twice replaces the earlier function.
        """
        k = as_kernel(kernel)

        def decorator(fn: F) -> F:
            if k in self._fns:
                logger.debug("Overriding gradient for %s", k.value)
            self._fns[k] = fn
            return fn

        return decorator

    def unregister(self, kernel: Union[Kernel, str]) -> None:
        self._fns.pop(as_kernel(kernel), None)

    def get(self, kernel: Union[Kernel, str]) -> Optional["GradientFn"]:
        if not isinstance(kernel, Kernel):
            try:
                kernel = as_kernel(kernel)
            except KeyError:
                return None
        return self._fns.get(kernel)

    def __contains__(self, kernel: Kernel) -> bool:
        return kernel in self._fns

    def kernels(self) -> frozenset[Kernel]:
        return frozenset(self._fns)


GRADIENTS = GradientRegistry()
"""Process-wide default registry, populated by `tapeflow.infrastructure.gradients`."""

register_gradient = GRADIENTS.register
