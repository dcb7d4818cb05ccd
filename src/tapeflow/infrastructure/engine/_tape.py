"""
Tape nodes and reverse-mode backpropagation.

While a tape is recording, every kernel executed by the engine appends a
`TapeNode` describing the call. Nodes are linked into a DAG only through
tensor identity: a node whose output is the input of a later node is its
predecessor.

Gradients are computed in two phases:

1. `filter_tape` keeps only the nodes that lie on some path from the
   requested inputs ``xs`` to the output ``y``, pruning each node's inputs
   to the ones that depend on ``xs``. Non-float32 tensors never propagate,
   so comparison and integer kernels cut the path.
2. `backpropagate` walks the filtered nodes in reverse submission order,
   evaluates each node's gradient thunks for its pruned inputs, checks the
   shape of every produced gradient, and accumulates contributions for the
   same tensor by elementwise addition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence, Union

from ...domain._dtype import DType
from ...domain._errors import (
    GradientError,
    GradientShapeMismatchError,
    NoGradientRegisteredError,
)
from ...domain._kernel import Kernel

if TYPE_CHECKING:
    from ..gradients._registry import GradientRegistry
    from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)

GradThunk = Callable[[], "Tensor"]
GradientFn = Callable[["Tensor", "TapeNode"], Mapping[str, GradThunk]]
"""``gradient(dy, node) -> {slot: thunk}``; thunks run only for needed slots."""

CUSTOM_GRADIENT = "CustomGradient"


@dataclass
class TapeNode:
    """
    One executed kernel as seen by the gradient engine.

    Attributes
    ----------
    id : int
        Submission-ordered node id.
    kernel : Kernel | str
        Catalog kernel, or ``"CustomGradient"`` for `custom_grad` nodes.
    inputs : dict[str, Tensor]
        Input tensors by slot name.
    output : Tensor
        The single output tensor.
    attrs : dict[str, Any]
        Non-tensor kernel attributes (axes, flags, ...).
    gradient : GradientFn | None
        Explicit gradient for this node; ``None`` defers to the registry.
    """

    id: int
    kernel: Union[Kernel, str]
    inputs: dict[str, "Tensor"]
    output: "Tensor"
    attrs: dict[str, Any] = field(default_factory=dict)
    gradient: Optional[GradientFn] = None

    @property
    def kernel_name(self) -> str:
        return self.kernel.value if isinstance(self.kernel, Kernel) else str(self.kernel)


class Tape:
    """
    A recording window.

    Attributes
    ----------
    nodes : list[TapeNode]
        Recorded nodes in submission order.
    active : bool
        False once the window is closed.
    paused : bool
        True while this tape's own backprop runs, so backward kernels are not
        appended to the tape being walked.
    """

    def __init__(self) -> None:
        self.nodes: list[TapeNode] = []
        self.active = True
        self.paused = False
        self._held: set[int] = set()

    def append(self, node: TapeNode) -> None:
        self.nodes.append(node)
        self._held.add(node.output.id)
        for t in node.inputs.values():
            self._held.add(t.id)

    def holds(self, tensor_id: int) -> bool:
        """Whether a recorded node references the tensor."""
        return tensor_id in self._held

    def __len__(self) -> int:
        return len(self.nodes)


def _differentiable(t: "Tensor") -> bool:
    return t.dtype is DType.FLOAT32


def filter_tape(
    nodes: Sequence[TapeNode], xs: Sequence["Tensor"], y: "Tensor"
) -> list[tuple[TapeNode, dict[str, "Tensor"]]]:
    """
    Return the nodes on a path from any of `xs` to `y`.

    Each entry pairs a node with its pruned inputs: only the slots that
    depend on `xs` (and are float32) are kept.
    """
    from_x: set[int] = {x.id for x in xs}
    nodes_from_x: set[int] = set()
    for node in nodes:
        if not _differentiable(node.output):
            continue
        if any(t.id in from_x and _differentiable(t) for t in node.inputs.values()):
            nodes_from_x.add(node.id)
            from_x.add(node.output.id)

    lead_to_y: set[int] = {y.id}
    nodes_to_y: set[int] = set()
    for node in reversed(nodes):
        if node.output.id in lead_to_y:
            nodes_to_y.add(node.id)
            for t in node.inputs.values():
                lead_to_y.add(t.id)

    filtered = []
    for node in nodes:
        if node.id in nodes_from_x and node.id in nodes_to_y:
            pruned = {
                slot: t
                for slot, t in node.inputs.items()
                if t.id in from_x and _differentiable(t)
            }
            filtered.append((node, pruned))
    return filtered


def backpropagate(
    filtered: Sequence[tuple[TapeNode, Mapping[str, "Tensor"]]],
    grads: dict[int, "Tensor"],
    registry: "GradientRegistry",
    add: Callable[["Tensor", "Tensor"], "Tensor"],
) -> None:
    """
    Propagate gradients through `filtered` in reverse order.

    Parameters
    ----------
    filtered : Sequence[tuple[TapeNode, Mapping[str, Tensor]]]
        Output of `filter_tape`.
    grads : dict[int, Tensor]
        Tensor id to accumulated gradient. Must be seeded with ``y``'s
        gradient; updated in place.
    registry : GradientRegistry
        Lookup for nodes without an explicit gradient.
    add : callable
        Elementwise addition used to accumulate contributions.

    Raises
    ------
    NoGradientRegisteredError
        A node on the path has neither an explicit nor a registered gradient.
    GradientError
        A gradient function did not return a thunk for a required slot.
    GradientShapeMismatchError
        A gradient thunk returned a tensor whose shape differs from its input.
    """
    for node, pruned in reversed(filtered):
        dy = grads.get(node.output.id)
        if dy is None:
            continue

        fn = node.gradient
        if fn is None:
            fn = registry.get(node.kernel)
        if fn is None:
            raise NoGradientRegisteredError(node.kernel_name)

        thunks = fn(dy, node)

        for slot, x in pruned.items():
            if slot not in thunks:
                raise GradientError(
                    f"Cannot backprop through input '{slot}' of '{node.kernel_name}'. "
                    f"Available gradients found: {sorted(thunks)}."
                )
            g = thunks[slot]()
            if tuple(g.shape) != tuple(x.shape):
                raise GradientShapeMismatchError(node.kernel_name, slot, x.shape, g.shape)

            prev = grads.get(x.id)
            grads[x.id] = g if prev is None else add(prev, g)

        logger.debug("Backprop through node %d (%s)", node.id, node.kernel_name)
