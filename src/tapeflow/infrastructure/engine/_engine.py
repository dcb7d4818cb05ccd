"""
The execution engine.

`Engine` is the single point through which every tensor is created, every
kernel is dispatched and every buffer is released. It owns:

- the backend registry (name -> factory), the lazily created backend
  instances and the active backend;
- the scope stack that bounds tensor lifetimes;
- the stack of open gradient tapes and the gradient registry used to walk
  them;
- bookkeeping for `memory()` and `time()`.

Engines are fully independent of each other. A process-wide default engine
is provided by `tapeflow.infrastructure.engine._environment` for
convenience, but nothing in this module refers to it.
"""

from __future__ import annotations

import functools
import logging
import time as _time
import warnings
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, Union

import numpy as np
from typing_extensions import TypeVar

from ...domain._backend import BackendFactory, IBackend
from ...domain._dtype import DType, DTypeLike, as_dtype, encode, infer_dtype
from ...domain._errors import (
    AlreadyDisposedError,
    BackendMismatchError,
    BackendNotFoundError,
    GradientError,
    NaNDetectedError,
    NonDifferentiableTypeError,
    NoTapeActiveError,
    ShapeMismatchError,
    TypeMismatchError,
    UnimplementedKernelError,
)
from ...domain._kernel import Kernel, OutputDType, kernel_spec
from ...domain.utils import assert_and_get_broadcast_shape, infer_shape, size_from_shape
from .._config import EngineConfig
from ..gradients._registry import GRADIENTS, GradientRegistry
from ..tensor._tensor import Tensor, Variable
from ._scope import ScopeGuard, ScopeManager, iter_tensors
from ._tape import CUSTOM_GRADIENT, GradientFn, Tape, TapeNode, backpropagate, filter_tape

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class MemoryInfo:
    """
    Snapshot of engine memory usage.

    Attributes
    ----------
    num_tensors : int
        Live (not disposed) tensors, variables included.
    num_data_buffers : int
        Live buffers across all instantiated backends.
    num_bytes : int
        Bytes held by live tensors.
    backend_bytes : int
        Bytes reported by the backends themselves.
    """

    num_tensors: int
    num_data_buffers: int
    num_bytes: int
    backend_bytes: int


@dataclass(frozen=True)
class TimingInfo:
    """Wall-clock and summed kernel time of an `Engine.time` call, in ms."""

    wall_ms: float
    kernel_ms: float


class GradientTape:
    """
    Recording window returned by `Engine.record`.

    Kernels executed inside the ``with`` block are recorded; `gradient` may
    be called while the window is still open.
    """

    def __init__(self, engine: "Engine") -> None:
        self._engine = engine
        self._tape: Optional[Tape] = None

    def __enter__(self) -> "GradientTape":
        self._tape = self._engine._open_tape()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._tape is not None:
            self._engine._close_tape(self._tape)
        return False

    def gradient(
        self,
        y: Tensor,
        xs: Union[Tensor, Sequence[Tensor]],
        dy: Optional[Tensor] = None,
    ) -> Union[Tensor, list[Tensor]]:
        """
        Gradients of `y` with respect to `xs` over the recorded kernels.

        Returns a single tensor when `xs` is a tensor, else a list.

        Raises
        ------
        NoTapeActiveError
            If the window has not been entered or is already closed.
        """
        if self._tape is None or not self._tape.active:
            raise NoTapeActiveError("GradientTape.gradient() called outside its recording window.")
        single = isinstance(xs, Tensor)
        grads = self._engine._gradients_from_tape(self._tape, y, [xs] if single else list(xs), dy)
        return grads[0] if single else grads


class Engine:
    """
    Orchestrates backends, scopes and gradient tapes.

    Parameters
    ----------
    config : EngineConfig, optional
        Engine settings. Defaults to ``EngineConfig()`` (CPU backend, no
        debug checks).
    registry : GradientRegistry, optional
        Gradient lookup. Defaults to the process-wide registry.
    default_backends : bool, optional
        Register the built-in ``cpu`` and ``cuda`` backends. Defaults to True.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[GradientRegistry] = None,
        default_backends: bool = True,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.registry = registry if registry is not None else GRADIENTS

        self._factories: dict[str, BackendFactory] = {}
        self._instances: dict[str, IBackend] = {}
        self._backend_name: Optional[str] = None

        self._scopes = ScopeManager(self.dispose_tensor, self._held_by_tape)
        self._tapes: list[Tape] = []
        self._no_grad_depth = 0

        self._variables: dict[str, Variable] = {}
        self._live: weakref.WeakSet[Tensor] = weakref.WeakSet()
        self._next_id = 0
        self._next_node_id = 0
        self._next_variable_id = 0
        self._num_tensors = 0
        self._num_bytes = 0
        self._kernel_times: Optional[list[float]] = None

        if default_backends:
            self._register_default_backends()

    def _register_default_backends(self) -> None:
        from ..backends._cpu import CPUBackend
        from ..backends._cuda import CudaBackend

        self.register_backend("cpu", CPUBackend)
        self.register_backend("cuda", lambda: CudaBackend(self.config.cuda_device))

    # ------------------------------------------------------------------
    # backend registry
    # ------------------------------------------------------------------
    def register_backend(self, name: str, factory: BackendFactory) -> None:
        """
        Register a backend factory under `name`.

        The factory is not called until the backend is first activated.

        Raises
        ------
        ValueError
            If `name` is already registered.
        TypeError
            If `factory` is not callable.
        """
        if not callable(factory):
            raise TypeError(f"Backend factory for '{name}' must be callable.")
        if name in self._factories:
            raise ValueError(f"Backend '{name}' is already registered.")
        self._factories[name] = factory
        logger.debug("Registered backend %r", name)

    def remove_backend(self, name: str) -> None:
        """
        Unregister a backend and dispose its instance (if any).

        Removing the active backend warns; the next kernel then activates
        ``config.backend`` again.
        """
        if name not in self._factories:
            raise BackendNotFoundError(name)
        instance = self._instances.pop(name, None)
        if instance is not None:
            self._release_live(name)
            instance.dispose()
        del self._factories[name]
        if self._backend_name == name:
            warnings.warn(f"Removed the active backend '{name}'.", RuntimeWarning, stacklevel=2)
            self._backend_name = None
        logger.debug("Removed backend %r", name)

    def registered_backends(self) -> list[str]:
        return list(self._factories)

    def find_backend(self, name: str) -> Optional[IBackend]:
        """Return the (lazily created) instance for `name`, or None if unregistered."""
        if name not in self._factories:
            return None
        return self._instance(name)

    def set_backend(self, name: str) -> IBackend:
        """
        Activate a registered backend, creating it if needed.

        Raises
        ------
        BackendNotFoundError
            If `name` was never registered.
        BackendUnavailableError
            If the factory cannot create the backend on this host.
        UnimplementedKernelError
            If ``config.strict_kernels`` is on and the backend lacks kernels.
        """
        if name not in self._factories:
            raise BackendNotFoundError(name)
        backend = self._instance(name)
        if self._backend_name != name:
            logger.debug("Active backend: %r -> %r", self._backend_name, name)
        self._backend_name = name
        return backend

    @property
    def backend(self) -> IBackend:
        """The active backend, activating ``config.backend`` on first use."""
        if self._backend_name is None:
            return self.set_backend(self.config.backend)
        return self._instances[self._backend_name]

    @property
    def backend_name(self) -> str:
        if self._backend_name is None:
            self.set_backend(self.config.backend)
        return self._backend_name

    def _instance(self, name: str) -> IBackend:
        backend = self._instances.get(name)
        if backend is not None:
            return backend

        backend = self._factories[name]()
        if not isinstance(backend, IBackend):
            raise TypeError(f"Factory for backend '{name}' returned {type(backend).__name__}.")
        # buffers are issued under the registration name
        backend.name = name

        missing = sorted(k.value for k in Kernel if k not in backend.kernels())
        if missing:
            if self.config.strict_kernels:
                raise UnimplementedKernelError(missing[0], name)
            warnings.warn(
                f"Backend '{name}' does not implement {len(missing)} kernel(s): "
                f"{', '.join(missing)}.",
                RuntimeWarning,
                stacklevel=3,
            )
        self._instances[name] = backend
        logger.debug("Instantiated backend %r (%d kernels)", name, len(backend.kernels()))
        return backend

    def _owner(self, t: Tensor) -> IBackend:
        backend = self._instances.get(t.backend_name)
        if backend is None:
            raise AlreadyDisposedError(t.id)
        return backend

    # ------------------------------------------------------------------
    # tensors
    # ------------------------------------------------------------------
    def next_tensor_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _wrap(self, data_id, shape, dtype: DType) -> Tensor:
        t = Tensor(self, data_id, shape, dtype)
        self._num_tensors += 1
        self._num_bytes += t.nbytes
        self._live.add(t)
        self._scopes.track(t)
        return t

    def make_tensor(
        self,
        values: Any,
        shape: Optional[Sequence[int]] = None,
        dtype: Optional[DTypeLike] = None,
    ) -> Tensor:
        """
        Upload host values into a new tensor on the active backend.

        Parameters
        ----------
        values : array-like
            Nested sequences, a NumPy array, or a scalar.
        shape : Sequence[int], optional
            Target shape; the values are reshaped to it and must have the
            same number of elements.
        dtype : DTypeLike, optional
            Element dtype; inferred from `values` when omitted.

        Raises
        ------
        ValueError
            On ragged input or when `shape` does not match the value count.
        """
        dt = as_dtype(dtype) if dtype is not None else infer_dtype(values)
        if not isinstance(values, np.ndarray):
            infer_shape(values)
        arr = encode(values, dt)
        if shape is not None:
            target = tuple(int(d) for d in shape)
            if size_from_shape(target) != arr.size:
                raise ValueError(
                    f"Based on the provided shape {list(target)}, the tensor should have "
                    f"{size_from_shape(target)} values but has {arr.size}."
                )
            arr = arr.reshape(target)
        backend = self.backend
        return self._wrap(backend.write(arr, dt), arr.shape, dt)

    def make_variable(
        self,
        initial: Union[Tensor, Any],
        name: Optional[str] = None,
        trainable: bool = True,
        dtype: Optional[DTypeLike] = None,
    ) -> Variable:
        """
        Create a variable holding a copy of `initial`.

        Raises
        ------
        ValueError
            If a variable called `name` already exists on this engine.
        """
        if name is None:
            while f"Variable_{self._next_variable_id}" in self._variables:
                self._next_variable_id += 1
            name = f"Variable_{self._next_variable_id}"
            self._next_variable_id += 1
        elif name in self._variables:
            raise ValueError(f"Variable with name '{name}' was already registered.")

        backend = self.backend
        if isinstance(initial, Tensor):
            self._check_input(initial, "variable")
            if dtype is not None and as_dtype(dtype) is not initial.dtype:
                raise TypeMismatchError(initial.dtype, as_dtype(dtype))
            data_id = self._owner(initial).copy(initial.data_id)
            shape, dt = initial.shape, initial.dtype
        else:
            dt = as_dtype(dtype) if dtype is not None else infer_dtype(initial)
            arr = encode(initial, dt)
            data_id = backend.write(arr, dt)
            shape = arr.shape

        var = Variable(self, data_id, shape, dt, name=name, trainable=trainable)
        self._num_tensors += 1
        self._num_bytes += var.nbytes
        self._live.add(var)
        self._variables[name] = var
        return var

    def assign_variable(self, var: Variable, value: Tensor) -> None:
        self._check_input(var, "assign")
        self._check_input(value, "assign")
        if value.dtype is not var.dtype:
            raise TypeMismatchError(var.dtype, value.dtype)
        if value.shape != var.shape:
            raise ShapeMismatchError(
                var.shape,
                value.shape,
                f"Shape of the new value {list(value.shape)} does not match the "
                f"variable's shape {list(var.shape)}.",
            )
        backend = self._owner(var)
        old = var._swap_data(backend.copy(value.data_id))
        backend.dispose_data(old)

    @property
    def variables(self) -> dict[str, Variable]:
        return dict(self._variables)

    def read(self, t: Tensor) -> np.ndarray:
        t._check_live()
        return self._owner(t).read(t.data_id)

    async def read_async(self, t: Tensor) -> np.ndarray:
        t._check_live()
        return await self._owner(t).read_async(t.data_id)

    def dispose_tensor(self, t: Tensor) -> None:
        """Release a tensor's storage; a no-op for disposed tensors."""
        if t.is_disposed:
            return
        backend = self._instances.get(t.backend_name)
        if backend is not None:
            backend.dispose_data(t._data_id)
        t._mark_disposed()
        self._live.discard(t)
        self._num_tensors -= 1
        self._num_bytes -= t.nbytes
        if isinstance(t, Variable) and self._variables.get(t.name) is t:
            del self._variables[t.name]

    def _release_live(self, backend_name: Optional[str] = None) -> None:
        # Marks tensors disposed before their backend instance goes away.
        for t in list(self._live):
            if backend_name is None or t.backend_name == backend_name:
                self.dispose_tensor(t)

    def dispose(self, container: Any) -> None:
        """Dispose every tensor inside a (nested) container."""
        for t in iter_tensors(container):
            t.dispose()

    # ------------------------------------------------------------------
    # kernel dispatch
    # ------------------------------------------------------------------
    def _check_input(self, t: Tensor, kernel: str) -> None:
        if not isinstance(t, Tensor):
            raise TypeError(f"'{kernel}' expects Tensor inputs, got {type(t).__name__}.")
        if t.engine is not self:
            raise BackendMismatchError(kernel, self.backend_name, f"{t.backend_name} (another engine)")
        t._check_live()

    def execute_kernel(
        self,
        kernel: Kernel,
        inputs: Mapping[str, Tensor],
        attrs: Optional[Mapping[str, Any]] = None,
        gradient: Optional[GradientFn] = None,
    ) -> Tensor:
        """
        Validate, dispatch and record one kernel call.

        Parameters
        ----------
        kernel : Kernel
            Catalog kernel to run.
        inputs : Mapping[str, Tensor]
            Input tensors by slot name (see `KernelSpec.inputs`).
        attrs : Mapping[str, Any], optional
            Non-tensor attributes.
        gradient : GradientFn, optional
            Gradient for this call; defaults to the registry entry.

        Returns
        -------
        Tensor
            The output, tracked by the innermost scope.

        Raises
        ------
        UnimplementedKernelError
            The active backend lacks `kernel`.
        AlreadyDisposedError
            An input was disposed.
        BackendMismatchError
            An input is owned by another backend or engine.
        TypeMismatchError
            Input dtypes violate the kernel's dtype rules.
        ShapeMismatchError
            Broadcasting inputs are incompatible.
        NaNDetectedError
            Debug mode is on and the output holds NaN.
        """
        attrs = dict(attrs or {})
        backend = self.backend
        name = self._backend_name
        if kernel not in backend.kernels():
            raise UnimplementedKernelError(kernel.value, name)

        spec = kernel_spec(kernel)
        for slot in spec.inputs:
            if slot not in inputs:
                raise TypeError(f"Kernel '{kernel.value}' is missing input '{slot}'.")
        for t in inputs.values():
            self._check_input(t, kernel.value)
            if t.backend_name != name:
                raise BackendMismatchError(kernel.value, name, t.backend_name)

        for slot in spec.inputs:
            allowed = spec.allowed(slot)
            dt = inputs[slot].dtype
            if dt not in allowed:
                expected = "|".join(sorted(d.value for d in allowed))
                raise TypeMismatchError(
                    dt,
                    expected,
                    f"Kernel '{kernel.value}' does not accept dtype '{dt}' for input "
                    f"'{slot}' (expected {expected}).",
                )
        if spec.same_dtype:
            first = inputs[spec.same_dtype[0]].dtype
            for slot in spec.same_dtype[1:]:
                if inputs[slot].dtype is not first:
                    raise TypeMismatchError(first, inputs[slot].dtype)

        if spec.broadcasting:
            functools.reduce(
                assert_and_get_broadcast_shape,
                [inputs[s].shape for s in spec.broadcasting],
            )

        out_dtype = self._output_dtype(kernel, inputs, attrs)

        if self._kernel_times is not None:
            stop = backend.start_timer()
            data_id, shape = backend.run(kernel, {k: t.data_id for k, t in inputs.items()}, attrs, out_dtype)
            self._kernel_times.append(stop())
        else:
            data_id, shape = backend.run(kernel, {k: t.data_id for k, t in inputs.items()}, attrs, out_dtype)

        if self.config.debug and backend.has_nan(data_id, out_dtype):
            backend.dispose_data(data_id)
            raise NaNDetectedError(kernel.value, out_dtype)

        out = self._wrap(data_id, shape, out_dtype)
        if inputs and self.is_recording:
            self._record(kernel, dict(inputs), out, attrs, gradient)
        return out

    @staticmethod
    def _output_dtype(kernel: Kernel, inputs: Mapping[str, Tensor], attrs: Mapping[str, Any]) -> DType:
        spec = kernel_spec(kernel)
        rule = spec.output
        if rule is OutputDType.BOOL:
            return DType.BOOL
        if rule is OutputDType.INT32:
            return DType.INT32
        if rule is OutputDType.FLOAT32:
            return DType.FLOAT32
        if rule is OutputDType.ATTR:
            return as_dtype(attrs["dtype"])
        source = spec.same_dtype[0] if spec.same_dtype else spec.inputs[0]
        return inputs[source].dtype

    # ------------------------------------------------------------------
    # scopes
    # ------------------------------------------------------------------
    def start_scope(self, name: Optional[str] = None) -> None:
        self._scopes.start_scope(name)

    def end_scope(self, result: Any = None) -> Any:
        return self._scopes.end_scope(result)

    def keep(self, t: Tensor) -> Tensor:
        """Exempt `t` from release by any scope; see `ScopeManager.keep`."""
        return self._scopes.keep(t)

    def track(self, t: Tensor) -> Tensor:
        if isinstance(t, Variable):
            return t
        return self._scopes.track(t)

    @property
    def scope_depth(self) -> int:
        return self._scopes.depth

    def scope_guard(self, name: Optional[str] = None) -> ScopeGuard:
        return ScopeGuard(self._scopes, name)

    def scope(self, fn: Callable[[Callable[[Tensor], Tensor]], R], name: Optional[str] = None) -> R:
        """
        Run ``fn(keep)`` inside a new scope.

        Tensors created by `fn` are released when it returns, except those
        in its return value (re-tracked by the parent scope) and those
        passed to `keep`. If `fn` raises, the scope is closed and the
        exception propagates.
        """
        with self.scope_guard(name) as guard:
            return guard.result(fn(self.keep))

    def tidy(self, fn: Callable[..., R], *args: Any, name: Optional[str] = None) -> R:
        """Run ``fn(*args)`` inside a new scope (see `scope`)."""
        with self.scope_guard(name or getattr(fn, "__name__", None)) as guard:
            return guard.result(fn(*args))

    # ------------------------------------------------------------------
    # tapes
    # ------------------------------------------------------------------
    @property
    def is_recording(self) -> bool:
        return self._no_grad_depth == 0 and any(not t.paused for t in self._tapes)

    def _open_tape(self) -> Tape:
        tape = Tape()
        self._tapes.append(tape)
        return tape

    def _close_tape(self, tape: Tape) -> None:
        tape.active = False
        if tape in self._tapes:
            self._tapes.remove(tape)

    def _held_by_tape(self, t: Tensor) -> bool:
        return any(tape.holds(t.id) for tape in self._tapes)

    def _record(
        self,
        kernel: Union[Kernel, str],
        inputs: dict[str, Tensor],
        output: Tensor,
        attrs: dict[str, Any],
        gradient: Optional[GradientFn],
    ) -> TapeNode:
        self._next_node_id += 1
        node = TapeNode(self._next_node_id, kernel, inputs, output, attrs, gradient)
        for tape in self._tapes:
            if not tape.paused:
                tape.append(node)
        return node

    def record(self) -> GradientTape:
        """
        Open a recording window.

        Examples
        --------
        >>> with engine.record() as tape:
        ...     y = x * x
        ...     dx = tape.gradient(y, x)
        """
        return GradientTape(self)

    def no_grad(self) -> "_NoGrad":
        """Context manager suspending tape recording."""
        return _NoGrad(self)

    def _ones(self, shape: Sequence[int]) -> Tensor:
        return self.execute_kernel(
            Kernel.FILL, {}, {"shape": tuple(shape), "value": 1.0, "dtype": DType.FLOAT32}
        )

    def _add(self, a: Tensor, b: Tensor) -> Tensor:
        return self.execute_kernel(Kernel.ADD, {"a": a, "b": b})

    def _gradients_from_tape(
        self,
        tape: Tape,
        y: Tensor,
        xs: Sequence[Tensor],
        dy: Optional[Tensor] = None,
        allow_unconnected: bool = False,
    ) -> list[Optional[Tensor]]:
        if not isinstance(y, Tensor):
            raise TypeError(f"The differentiated function must return a Tensor, got {type(y).__name__}.")
        if y.dtype is not DType.FLOAT32:
            raise NonDifferentiableTypeError(y.dtype, "y")
        _check_xs(xs)

        if dy is None:
            dy = self._ones(y.shape)
        elif dy.shape != y.shape:
            raise ShapeMismatchError(
                y.shape, dy.shape, f"dy must have shape {list(y.shape)}, got {list(dy.shape)}."
            )

        filtered = filter_tape(tape.nodes, xs, y)
        grads: dict[int, Tensor] = {y.id: dy}
        tape.paused = True
        try:
            backpropagate(filtered, grads, self.registry, self._add)
        finally:
            tape.paused = False

        result: list[Optional[Tensor]] = []
        for i, x in enumerate(xs):
            g = grads.get(x.id)
            if g is None and not allow_unconnected:
                raise GradientError(
                    f"Cannot compute gradient of y=f(x) with respect to x: xs[{i}] "
                    f"(tensor {x.id}) is not connected to y."
                )
            result.append(g)
        return result

    def backprop(
        self, y: Tensor, xs: Sequence[Tensor], dy: Optional[Tensor] = None
    ) -> list[Tensor]:
        """
        Gradients of `y` with respect to `xs` from the innermost open tape.

        Raises
        ------
        NoTapeActiveError
            If no tape is recording.
        """
        if not self._tapes:
            raise NoTapeActiveError()
        return self._gradients_from_tape(self._tapes[-1], y, list(xs), dy)

    def gradients(
        self,
        f: Callable[[], Tensor],
        xs: Sequence[Tensor],
        dy: Optional[Tensor] = None,
        allow_unconnected: bool = False,
    ) -> tuple[Tensor, list[Optional[Tensor]]]:
        """
        Evaluate `f` under a fresh tape and differentiate it.

        Parameters
        ----------
        f : Callable[[], Tensor]
            Zero-argument function computing ``y``.
        xs : Sequence[Tensor]
            Tensors to differentiate with respect to (float32).
        dy : Tensor, optional
            Upstream gradient of ``y``; defaults to ones.
        allow_unconnected : bool, optional
            Return None for `xs` with no path to ``y`` instead of raising.

        Returns
        -------
        tuple[Tensor, list[Tensor]]
            ``y`` and one gradient per entry of `xs`, each shaped like it.

        Raises
        ------
        NonDifferentiableTypeError
            If an x or ``y`` is not float32.
        GradientError
            If an x has no path to ``y``.
        NoGradientRegisteredError
            If a kernel on the path has no gradient.
        GradientShapeMismatchError
            If a gradient function returns a wrongly shaped tensor.
        """
        xs = list(xs)
        _check_xs(xs)
        with self.scope_guard("gradients") as guard:
            tape = self._open_tape()
            try:
                y = f()
            finally:
                self._close_tape(tape)
            grads = self._gradients_from_tape(tape, y, xs, dy, allow_unconnected)
            guard.result((y, grads))
        return y, grads

    def custom_grad(self, f: Callable[..., tuple[Tensor, Callable[[Tensor], Any]]]) -> Callable[..., Tensor]:
        """
        Wrap `f` so that its gradient is user supplied.

        ``f(*inputs)`` must return ``(value, grad_fn)`` where
        ``grad_fn(dy)`` returns one gradient per input (a single tensor is
        accepted for one input). The forward computation is not recorded;
        a single tape node stands for the whole call.
        """

        @functools.wraps(f)
        def wrapper(*inputs: Tensor) -> Tensor:
            for t in inputs:
                if not isinstance(t, Tensor):
                    raise TypeError("custom_grad functions take Tensor arguments only.")
            with self.no_grad():
                out = f(*inputs)
            if not (isinstance(out, tuple) and len(out) == 2 and callable(out[1])):
                raise TypeError("A custom_grad function must return (value, grad_fn).")
            value, grad_fn = out
            if not isinstance(value, Tensor):
                raise TypeError("The value returned by a custom_grad function must be a Tensor.")

            if self.is_recording and inputs:
                slots = {f"x{i}": t for i, t in enumerate(inputs)}

                def gradient(dy: Tensor, node: TapeNode) -> dict[str, Callable[[], Tensor]]:
                    gs = grad_fn(dy)
                    gs = [gs] if isinstance(gs, Tensor) else list(gs)
                    if len(gs) != len(slots):
                        raise GradientError(
                            f"The custom gradient returned {len(gs)} gradient(s) for "
                            f"{len(slots)} input(s)."
                        )
                    return {f"x{i}": (lambda g=g: g) for i, g in enumerate(gs)}

                self._record(CUSTOM_GRADIENT, slots, value, {}, gradient)
            return value

        return wrapper

    # ------------------------------------------------------------------
    # functional gradient helpers
    # ------------------------------------------------------------------
    def grad(self, f: Callable[[Tensor], Tensor]) -> Callable[..., Tensor]:
        """Return ``g(x, dy=None)`` computing df/dx."""

        def g(x: Tensor, dy: Optional[Tensor] = None) -> Tensor:
            def run() -> Tensor:
                _, grads = self.gradients(lambda: f(x), [x], dy)
                return grads[0]

            return self.tidy(run)

        return g

    def grads(self, f: Callable[..., Tensor]) -> Callable[..., list[Tensor]]:
        """Return ``g(args, dy=None)`` computing the gradient for each arg."""

        def g(args: Sequence[Tensor], dy: Optional[Tensor] = None) -> list[Tensor]:
            args = list(args)

            def run() -> list[Tensor]:
                _, grads = self.gradients(lambda: f(*args), args, dy)
                return grads

            return self.tidy(run)

        return g

    def value_and_grad(self, f: Callable[[Tensor], Tensor]) -> Callable[..., tuple[Tensor, Tensor]]:
        """Like `grad`, but also returns ``f(x)``."""

        def g(x: Tensor, dy: Optional[Tensor] = None) -> tuple[Tensor, Tensor]:
            value, grads = self.gradients(lambda: f(x), [x], dy)
            return value, grads[0]

        return g

    def value_and_grads(
        self, f: Callable[..., Tensor]
    ) -> Callable[..., tuple[Tensor, list[Tensor]]]:
        """Like `grads`, but also returns ``f(*args)``."""

        def g(args: Sequence[Tensor], dy: Optional[Tensor] = None) -> tuple[Tensor, list[Tensor]]:
            args = list(args)
            return self.gradients(lambda: f(*args), args, dy)

        return g

    def variable_grads(
        self, f: Callable[[], Tensor], var_list: Optional[Sequence[Variable]] = None
    ) -> tuple[Tensor, dict[str, Tensor]]:
        """
        Gradients of a scalar loss with respect to variables.

        Parameters
        ----------
        f : Callable[[], Tensor]
            Returns a rank-0 float32 tensor.
        var_list : Sequence[Variable], optional
            Variables to differentiate. Defaults to every trainable variable
            of this engine.

        Returns
        -------
        tuple[Tensor, dict[str, Tensor]]
            The loss and a mapping from variable name to gradient. Variables
            not connected to the loss are omitted.

        Raises
        ------
        ValueError
            If there are no variables or the loss is not a scalar.
        GradientError
            If no variable is connected to the loss.
        """
        if var_list is None:
            var_list = [v for v in self._variables.values() if v.trainable]
        var_list = list(var_list)
        if not var_list:
            raise ValueError("variable_grads() expects at least one variable.")

        def scalar_f() -> Tensor:
            y = f()
            if not isinstance(y, Tensor) or y.rank != 0:
                shape = getattr(y, "shape", None)
                raise ValueError(f"The result of f() must be a scalar, got shape {shape}.")
            return y

        value, grads = self.gradients(scalar_f, var_list, allow_unconnected=True)
        result = {v.name: g for v, g in zip(var_list, grads) if g is not None}
        if not result:
            raise GradientError(
                "Cannot find a connection between any variable and the result of the loss function."
            )
        return value, result

    # ------------------------------------------------------------------
    # introspection
    # ------------------------------------------------------------------
    def memory(self) -> MemoryInfo:
        infos = [b.memory() for b in self._instances.values()]
        return MemoryInfo(
            num_tensors=self._num_tensors,
            num_data_buffers=sum(i.num_buffers for i in infos),
            num_bytes=self._num_bytes,
            backend_bytes=sum(i.num_bytes for i in infos),
        )

    def time(self, fn: Callable[[], Any]) -> TimingInfo:
        """
        Run `fn` and report its wall time and the summed time of its kernels.

        Kernel timing synchronizes the device after every kernel, so timed
        code runs slower than untimed code.
        """
        outer = self._kernel_times
        self._kernel_times = []
        start = _time.perf_counter()
        try:
            fn()
            self.backend.synchronize()
            kernel_ms = float(sum(self._kernel_times))
        finally:
            wall_ms = (_time.perf_counter() - start) * 1000.0
            if outer is not None:
                outer.extend(self._kernel_times)
            self._kernel_times = outer
        return TimingInfo(wall_ms=wall_ms, kernel_ms=kernel_ms)

    def reset(self) -> None:
        """Dispose every backend instance and forget all engine state."""
        self._release_live()
        for backend in self._instances.values():
            backend.dispose()
        self._instances.clear()
        self._backend_name = None
        self._scopes.clear()
        for tape in self._tapes:
            tape.active = False
        self._tapes.clear()
        self._no_grad_depth = 0
        self._variables.clear()
        self._num_tensors = 0
        self._num_bytes = 0
        self._kernel_times = None
        logger.debug("Engine reset")


class _NoGrad:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def __enter__(self) -> None:
        self._engine._no_grad_depth += 1

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._engine._no_grad_depth -= 1
        return False


def _check_xs(xs: Sequence[Tensor]) -> None:
    if not xs:
        raise ValueError("gradients() received an empty list of xs.")
    for i, x in enumerate(xs):
        if not isinstance(x, Tensor):
            raise TypeError(f"xs[{i}] must be a Tensor, got {type(x).__name__}.")
        if x.dtype is not DType.FLOAT32:
            raise NonDifferentiableTypeError(x.dtype, f"xs[{i}]")
