"""Diagnostics and the capture scope used while rewriting.

Diagnostics describe problems with the analyzed document. They are data: the
pipeline hands them back to its caller as lists. Code running inside
:func:`collect_diagnostics` reports them with :func:`report` (or with a plain
``warnings.warn``) and keeps going; the scope gathers them in order.
Exceptions escaping the collected function are faults, not diagnostics, and
propagate unchanged.
"""

from __future__ import annotations

import os
import warnings
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class WarningsPolicy(str, Enum):
    DEFAULT = "default"
    ERROR = "error"
    IGNORE = "ignore"

    @classmethod
    def parse(cls, value: "str | WarningsPolicy") -> "WarningsPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(policy.value for policy in cls)
            raise ValueError(f"Unknown warnings policy {value!r} (expected one of: {allowed})") from None


@dataclass(frozen=True)
class Diagnostic:
    message: str
    severity: Severity = Severity.ERROR
    stage: str = ""
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    @classmethod
    def from_syntax_error(cls, exc: SyntaxError, stage: str) -> "Diagnostic":
        column = exc.offset - 1 if exc.offset else None
        return cls(
            message=exc.msg or str(exc),
            severity=Severity.ERROR,
            stage=stage,
            line=exc.lineno,
            column=column,
        )

    def location(self) -> str:
        if self.line is None:
            return "-"
        if self.column is None:
            return str(self.line)
        return f"{self.line}:{self.column}"

    def __str__(self) -> str:
        return f"{self.location()}: {self.severity.value}: {self.message}"


class DiagnosticError(Exception):
    """A diagnostic reported while no capture scope was active."""

    def __init__(self, diagnostic: Diagnostic):
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic


@dataclass
class Collected(Generic[T]):
    value: T
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass
class _Scope:
    policy: WarningsPolicy
    stage: str
    filename: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def add_warning(self, message, category, filename, lineno, file=None, line=None) -> None:
        if self.policy is WarningsPolicy.IGNORE:
            return
        severity = Severity.ERROR if self.policy is WarningsPolicy.ERROR else Severity.WARNING
        # A warning issued from analyzer code points into that code, not the document.
        located = self.filename is None or _same_file(filename, self.filename)
        self.diagnostics.append(
            Diagnostic(
                message=f"{category.__name__}: {message}",
                severity=severity,
                stage=self.stage,
                line=lineno if located else None,
            )
        )


def _same_file(left, right: str) -> bool:
    return os.path.basename(str(left)) == os.path.basename(right)


_active_scope: ContextVar[Optional[_Scope]] = ContextVar("diagnostic_scope", default=None)


def report(diagnostic: Diagnostic) -> None:
    """Record ``diagnostic`` in the active scope, or raise it when there is none."""
    scope = _active_scope.get()
    if scope is None:
        raise DiagnosticError(diagnostic)
    scope.add(diagnostic)


def collect_diagnostics(
    fn: Callable[[], T],
    policy: "WarningsPolicy | str" = WarningsPolicy.DEFAULT,
    stage: str = "",
    filename: Optional[str] = None,
) -> Collected[T]:
    """Run ``fn``, gathering what it reports instead of letting it abort.

    With ``filename`` set, only warnings attributed to that file keep their
    line number.
    """
    scope = _Scope(policy=WarningsPolicy.parse(policy), stage=stage, filename=filename)
    token = _active_scope.set(scope)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("always")
            warnings.showwarning = scope.add_warning
            value = fn()
    finally:
        _active_scope.reset(token)
    return Collected(value=value, diagnostics=scope.diagnostics)
