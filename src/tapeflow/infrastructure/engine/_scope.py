"""
Scope-based tensor lifetime management.

Every tensor created while a scope is open is tracked by the innermost
scope. Closing the scope releases each tracked tensor unless it is

- part of the scope's result, in which case it is handed to the parent
  scope (or becomes untracked at the root);
- kept, in which case no scope will ever release it; only an explicit
  ``dispose()`` frees it;
- still referenced by an open gradient tape, in which case it moves to the
  parent scope so the tape can differentiate through it later.

Variables are never tracked.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

if TYPE_CHECKING:
    from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


def iter_tensors(value: Any) -> Iterator["Tensor"]:
    """Yield every tensor inside a (possibly nested) container."""
    from ..tensor._tensor import Tensor

    if isinstance(value, Tensor):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from iter_tensors(v)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for v in value:
            yield from iter_tensors(v)


@dataclass
class ScopeFrame:
    """One open scope: the tensors it tracks, in creation order."""

    name: Optional[str] = None
    tracked: list["Tensor"] = field(default_factory=list)


class ScopeManager:
    """
    Stack of open scopes.

    Parameters
    ----------
    release : Callable[[Tensor], None]
        Disposes a tensor (the engine's `dispose_tensor`).
    retain : Callable[[Tensor], bool]
        Returns True for tensors that must survive the closing scope
        because an open tape still references them.
    """

    def __init__(
        self,
        release: Callable[["Tensor"], None],
        retain: Callable[["Tensor"], bool],
    ) -> None:
        self._release = release
        self._retain = retain
        self._stack: list[ScopeFrame] = []

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def active(self) -> Optional[ScopeFrame]:
        return self._stack[-1] if self._stack else None

    def start_scope(self, name: Optional[str] = None) -> ScopeFrame:
        frame = ScopeFrame(name=name)
        self._stack.append(frame)
        logger.debug("Scope %r opened at depth %d", name, len(self._stack))
        return frame

    def track(self, t: "Tensor") -> "Tensor":
        if self._stack:
            self._stack[-1].tracked.append(t)
        return t

    def keep(self, t: "Tensor") -> "Tensor":
        """
        Mark a tensor so that no scope releases it.

        Emits a `UserWarning` when called outside any scope, where there is
        nothing to keep the tensor from.
        """
        if not self._stack:
            warnings.warn(
                "keep() called outside of any scope; the tensor is not tracked "
                "and is only freed by an explicit dispose().",
                UserWarning,
                stacklevel=3,
            )
        t.kept = True
        return t

    def end_scope(self, result: Any = None) -> Any:
        """
        Close the innermost scope and release its tensors.

        Parameters
        ----------
        result : Any, optional
            Value returned from the scope. Every tensor inside it survives
            and is re-tracked by the parent scope.

        Returns
        -------
        Any
            `result`, unchanged.

        Raises
        ------
        RuntimeError
            If no scope is open.
        """
        if not self._stack:
            raise RuntimeError("end_scope() called with no open scope.")
        frame = self._stack.pop()
        parent = self._stack[-1] if self._stack else None

        returned = {t.id for t in iter_tensors(result)}
        released = 0
        for t in frame.tracked:
            if t.is_disposed or t.kept:
                continue
            if t.id in returned or self._retain(t):
                if parent is not None:
                    parent.tracked.append(t)
                continue
            self._release(t)
            released += 1

        logger.debug(
            "Scope %r closed: released %d of %d tracked tensors",
            frame.name,
            released,
            len(frame.tracked),
        )
        return result

    def clear(self) -> None:
        self._stack.clear()


class ScopeGuard:
    """
    Context-manager form of a scope.

    Examples
    --------
    >>> with engine.scope_guard() as guard:
    ...     h = a * b
    ...     out = guard.result(h + 1.0)
    """

    def __init__(self, scopes: ScopeManager, name: Optional[str] = None) -> None:
        self._scopes = scopes
        self._name = name
        self._result: Any = None

    def keep(self, t: "Tensor") -> "Tensor":
        return self._scopes.keep(t)

    def result(self, value: Any) -> Any:
        """Mark `value` as the scope's result; its tensors survive the close."""
        self._result = value
        return value

    def __enter__(self) -> "ScopeGuard":
        self._scopes.start_scope(self._name)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._scopes.end_scope(None if exc_type is not None else self._result)
        return False
