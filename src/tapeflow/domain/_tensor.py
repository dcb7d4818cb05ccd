"""
Tensor interface definitions.

This module defines the domain-level interface for tensor-like objects using
structural typing. It captures what the engine, the tape and the scope
manager need from a tensor without binding them to the concrete
infrastructure class.
"""

from __future__ import annotations

from typing import Any, Protocol, Union, runtime_checkable

from ._dtype import DType

Number = Union[int, float, bool]


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    An `ITensor` is an immutable, backend-owned n-dimensional array that
    participates in kernel dispatch, scope tracking and automatic
    differentiation.

    Notes
    -----
    - Identity (`id`) is what links tape nodes into a DAG: a tensor produced
      by one node and consumed by another connects the two.
    - The storage behind a tensor is released exactly once; afterwards
      `is_disposed` is True and any read raises `AlreadyDisposedError`.
    """

    @property
    def id(self) -> int:
        """Engine-unique identifier of this tensor."""
        ...

    @property
    def shape(self) -> tuple[int, ...]:
        """Return the shape of the tensor."""
        ...

    @property
    def dtype(self) -> DType:
        """Return the element dtype."""
        ...

    @property
    def size(self) -> int:
        """Return the number of elements (product of the shape)."""
        ...

    @property
    def rank(self) -> int:
        """Return the number of dimensions."""
        ...

    @property
    def is_disposed(self) -> bool:
        """Whether the tensor's storage has been released."""
        ...

    def to_numpy(self) -> Any:
        """
        Synchronously copy the tensor's values to a host array.

        Raises
        ------
        AlreadyDisposedError
            If the tensor has been disposed.
        """
        ...

    async def data(self) -> Any:
        """Copy values to the host once pending device work finishes."""
        ...

    def dispose(self) -> None:
        """Release the tensor's storage. Calling it twice is a no-op."""
        ...
