"""Self-time accounting for lazily evaluated stages.

Stages force each other recursively, so the wall time observed around one
evaluation also covers every nested evaluation it triggered. A running *time
shift* holds the total time already attributed to finished accounted
evaluations. Each evaluation subtracts the growth of the shift that happened
while it ran, which leaves only its own self time, then pushes its full
elapsed time back into the shift so that enclosing evaluations skip it.

The outermost accounted evaluation of a forcing stack publishes its shift in
the execution context; every evaluation nested under it, whichever accountant
or counters it belongs to, reads and advances that same shift. Only
call-stack nested, single-threaded forcing is supported.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from time import perf_counter
from typing import Callable, Dict, Optional, TypeVar

from .lazy import Lazy
from .logging_utils import get_logger

T = TypeVar("T")

Clock = Callable[[], float]

STAGE_NAMES = ("preprocess", "read", "rewrite", "type_check", "type_diagnostics")

logger = get_logger("timing")


def time_spent() -> float:
    """Default clock source, in seconds."""
    return perf_counter()


class TimingCounter:
    """A named accumulator that only ever grows."""

    __slots__ = ("name", "seconds")

    def __init__(self, name: str, seconds: float = 0.0):
        self.name = name
        self.seconds = seconds

    def add(self, seconds: float) -> None:
        # Clock jitter can produce tiny negative self times; counters never shrink.
        if seconds > 0.0:
            self.seconds += seconds

    def __repr__(self) -> str:
        return f"TimingCounter({self.name!r}, {self.seconds:.6f})"


class TimeShift:
    __slots__ = ("seconds",)

    def __init__(self) -> None:
        self.seconds = 0.0


_active_shift: ContextVar[Optional[TimeShift]] = ContextVar("time_shift", default=None)


class SelfTimeAccountant:
    """Wraps deferred computations so that their self time lands in a counter."""

    def __init__(self, clock: Clock = time_spent):
        self.clock = clock
        self._shift = TimeShift()

    @property
    def shift(self) -> float:
        return self._shift.seconds

    def timed_lazy(self, counter: TimingCounter, computation: Callable[[], T]) -> Lazy[T]:
        def evaluate() -> T:
            shift = _active_shift.get()
            token = None
            if shift is None:
                shift = self._shift
                token = _active_shift.set(shift)
            start = self.clock()
            shift0 = shift.seconds
            try:
                return computation()
            finally:
                elapsed = self.clock() - start
                nested = shift.seconds - shift0
                shift.seconds = shift0 + elapsed
                counter.add(elapsed - nested)
                if token is not None:
                    _active_shift.reset(token)
                logger.debug(
                    "%s: %.6fs self, %.6fs total", counter.name, elapsed - nested, elapsed
                )

        return Lazy(evaluate)


@dataclass
class TimingCounters:
    """The five stage counters plus the accountant that keeps them consistent.

    Reusing a ``TimingCounters`` object for another pipeline reuses its
    accountant too.
    """

    preprocess: TimingCounter = field(default_factory=lambda: TimingCounter("preprocess"))
    read: TimingCounter = field(default_factory=lambda: TimingCounter("read"))
    rewrite: TimingCounter = field(default_factory=lambda: TimingCounter("rewrite"))
    type_check: TimingCounter = field(default_factory=lambda: TimingCounter("type_check"))
    type_diagnostics: TimingCounter = field(
        default_factory=lambda: TimingCounter("type_diagnostics")
    )
    accountant: SelfTimeAccountant = field(
        default_factory=SelfTimeAccountant, repr=False, compare=False
    )

    def snapshot(self) -> Dict[str, float]:
        return {name: getattr(self, name).seconds for name in STAGE_NAMES}

    @property
    def total(self) -> float:
        return sum(self.snapshot().values())
