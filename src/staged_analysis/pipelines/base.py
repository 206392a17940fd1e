"""Shared pipeline models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import AnalysisConfig
from ..diagnostics import Diagnostic
from ..lazy import Lazy


@dataclass(frozen=True)
class Comment:
    text: str
    line: int
    column: int


@dataclass
class ReadResult:
    tree: Any
    comments: List[Comment] = field(default_factory=list)
    lexer_errors: List[Diagnostic] = field(default_factory=list)
    parser_errors: List[Diagnostic] = field(default_factory=list)
    config: Optional[AnalysisConfig] = None
    no_labels_for_completion: bool = False


@dataclass
class RewriteResult:
    config: AnalysisConfig
    tree: Any
    errors: List[Diagnostic] = field(default_factory=list)


@dataclass
class TypingStage:
    result: Any
    errors: Lazy[List[Diagnostic]]


@dataclass
class AnalysisRunStats:
    document: str
    completions: int
    error_count: int
    warning_count: int
    duration_seconds: float
    stage_timings: Dict[str, float] = field(default_factory=dict)
