"""Lazy, self-timed staged analysis of source documents."""

from .collaborators import PreprocessError, Toolchain, default_toolchain
from .config import (
    AnalysisConfig,
    PreprocessorConfig,
    QueryConfig,
    load_analysis_config,
    normalize,
)
from .diagnostics import Diagnostic, Severity, WarningsPolicy, collect_diagnostics, report
from .document import Document, Position
from .lazy import Lazy
from .pipelines.staged import Pipeline, for_completion, make, process
from .timing import SelfTimeAccountant, TimingCounters

__all__ = [
    "AnalysisConfig",
    "Diagnostic",
    "Document",
    "Lazy",
    "Pipeline",
    "Position",
    "PreprocessError",
    "PreprocessorConfig",
    "QueryConfig",
    "SelfTimeAccountant",
    "Severity",
    "TimingCounters",
    "Toolchain",
    "WarningsPolicy",
    "collect_diagnostics",
    "default_toolchain",
    "for_completion",
    "load_analysis_config",
    "make",
    "normalize",
    "process",
    "report",
]
