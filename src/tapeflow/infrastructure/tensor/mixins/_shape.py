"""
Shape and dtype manipulation methods.
"""

from __future__ import annotations

from abc import ABC
from typing import Optional, Sequence

from ....domain._dtype import DTypeLike
from ....domain._tensor import ITensor


class TensorMixinShape(ABC):
    """Reshape / transpose / broadcast / cast."""

    def reshape(self, *shape: int) -> ITensor:
        """
        Return a tensor with the same values and a new shape.

        Accepts either ``t.reshape(2, 3)`` or ``t.reshape((2, 3))``; one
        dimension may be ``-1`` and is inferred.
        """
        from ...ops import reshape

        if len(shape) == 1 and not isinstance(shape[0], int):
            shape = tuple(shape[0])
        return reshape(self, shape)

    def transpose(self, perm: Optional[Sequence[int]] = None) -> ITensor:
        from ...ops import transpose

        return transpose(self, perm)

    @property
    def T(self) -> ITensor:
        """Reverse all axes."""
        return self.transpose()

    def broadcast_to(self, shape: Sequence[int]) -> ITensor:
        from ...ops import broadcast_to

        return broadcast_to(self, shape)

    def cast(self, dtype: DTypeLike) -> ITensor:
        from ...ops import cast

        return cast(self, dtype)
