"""
Module-level API bound to the default engine.

Each function forwards to the same-named method of
`tapeflow.infrastructure.engine.get_engine()`, so

    >>> import tapeflow as tf
    >>> y = tf.tidy(lambda: tf.tensor([1.0, 2.0]) * 2)

is shorthand for calling the methods on the default engine. Code that needs
isolation should create its own `Engine` and call the methods directly.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from ..domain._backend import BackendFactory, IBackend
from .engine._engine import GradientTape, MemoryInfo, TimingInfo
from .engine._environment import get_engine
from .tensor._tensor import Tensor, Variable

# ---------------------------------------------------------------------------
# backends
# ---------------------------------------------------------------------------


def register_backend(name: str, factory: BackendFactory) -> None:
    get_engine().register_backend(name, factory)


def remove_backend(name: str) -> None:
    get_engine().remove_backend(name)


def set_backend(name: str) -> IBackend:
    """Activate the backend registered as `name`, instantiating it on first use."""
    return get_engine().set_backend(name)


def get_backend() -> IBackend:
    """Return the active backend instance of the default engine."""
    return get_engine().backend


def find_backend(name: str) -> Optional[IBackend]:
    return get_engine().find_backend(name)


def backend_name() -> str:
    return get_engine().backend_name


def registered_backends() -> list[str]:
    return get_engine().registered_backends()


# ---------------------------------------------------------------------------
# memory
# ---------------------------------------------------------------------------


def tidy(fn: Callable[..., Any], *args: Any, name: Optional[str] = None) -> Any:
    """
    Run ``fn(*args)`` in a scope and release the intermediates it created.

    Tensors in the return value survive and are tracked by the enclosing
    scope.
    """
    return get_engine().tidy(fn, *args, name=name)


def scope(fn: Callable[[Callable[[Tensor], Tensor]], Any], name: Optional[str] = None) -> Any:
    return get_engine().scope(fn, name=name)


def scope_guard(name: Optional[str] = None):
    return get_engine().scope_guard(name)


def start_scope(name: Optional[str] = None) -> None:
    get_engine().start_scope(name)


def end_scope(result: Any = None) -> Any:
    return get_engine().end_scope(result)


def keep(t: Tensor) -> Tensor:
    return get_engine().keep(t)


def dispose(container: Any) -> None:
    """Dispose every tensor found in `container` (nested lists, dicts, ...)."""
    get_engine().dispose(container)


def memory() -> MemoryInfo:
    return get_engine().memory()


def time(fn: Callable[[], Any]) -> TimingInfo:
    return get_engine().time(fn)


def reset() -> None:
    get_engine().reset()


# ---------------------------------------------------------------------------
# gradients
# ---------------------------------------------------------------------------


def record() -> GradientTape:
    return get_engine().record()


def no_grad():
    return get_engine().no_grad()


def gradients(
    f: Callable[[], Tensor], xs: Sequence[Tensor], dy: Optional[Tensor] = None
) -> tuple[Tensor, list[Tensor]]:
    return get_engine().gradients(f, xs, dy)


def grad(f: Callable[[Tensor], Tensor]) -> Callable[..., Tensor]:
    """
    Return ``g(x, dy=None)`` computing the gradient of ``f(x)`` w.r.t. `x`.

    Examples
    --------
    >>> g = tf.grad(lambda x: x * x)
    >>> g(tf.tensor([3.0])).to_numpy()
    array([6.], dtype=float32)
    """
    return get_engine().grad(f)


def grads(f: Callable[..., Tensor]) -> Callable[..., list[Tensor]]:
    return get_engine().grads(f)


def value_and_grad(f: Callable[[Tensor], Tensor]) -> Callable[..., tuple[Tensor, Tensor]]:
    return get_engine().value_and_grad(f)


def value_and_grads(f: Callable[..., Tensor]) -> Callable[..., tuple[Tensor, list[Tensor]]]:
    return get_engine().value_and_grads(f)


def variable_grads(
    f: Callable[[], Tensor], var_list: Optional[Sequence[Variable]] = None
) -> tuple[Tensor, dict[str, Tensor]]:
    return get_engine().variable_grads(f, var_list)


def custom_grad(f: Callable[..., Any]) -> Callable[..., Tensor]:
    """
    Wrap `f` so that its gradient is user supplied.

    ``f(*inputs)`` returns ``(value, grad_fn)``; ``grad_fn(dy)`` returns one
    gradient per input. Usable as a decorator.
    """
    return get_engine().custom_grad(f)
