"""Memoized deferred computations.

A :class:`Lazy` cell evaluates its thunk on first :meth:`Lazy.force` and
replays the outcome afterwards. A failure is replayed too: the very same
exception object is raised again on every later force.
"""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

_PENDING = "pending"
_FORCING = "forcing"
_VALUE = "value"
_FAILED = "failed"


class RecursiveForceError(RuntimeError):
    """Raised when a lazy cell is forced from inside its own evaluation."""


class Lazy(Generic[T]):
    __slots__ = ("_state", "_thunk", "_value", "_error")

    def __init__(self, thunk: Callable[[], T]):
        self._state = _PENDING
        self._thunk: Optional[Callable[[], T]] = thunk
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None

    @classmethod
    def from_value(cls, value: T) -> "Lazy[T]":
        cell: Lazy[T] = cls.__new__(cls)
        cell._state = _VALUE
        cell._thunk = None
        cell._value = value
        cell._error = None
        return cell

    @property
    def is_forced(self) -> bool:
        return self._state in (_VALUE, _FAILED)

    def force(self) -> T:
        if self._state == _VALUE:
            return self._value  # type: ignore[return-value]
        if self._state == _FAILED:
            raise self._error  # type: ignore[misc]
        if self._state == _FORCING:
            raise RecursiveForceError("lazy value forced during its own evaluation")

        thunk = self._thunk
        self._state = _FORCING
        try:
            value = thunk()  # type: ignore[misc]
        except Exception as exc:
            self._state = _FAILED
            self._error = exc
            self._thunk = None
            raise
        except BaseException:
            # Interrupts are not memoized; the cell may be forced again.
            self._state = _PENDING
            raise
        self._state = _VALUE
        self._value = value
        self._thunk = None
        return value

    def __repr__(self) -> str:
        if self._state == _VALUE:
            return f"Lazy(value={self._value!r})"
        if self._state == _FAILED:
            return f"Lazy(failed={self._error!r})"
        return f"Lazy(<{self._state}>)"
