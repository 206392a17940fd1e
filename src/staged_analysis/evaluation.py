"""Benchmark helpers for repeated queries against the same document."""

from __future__ import annotations

from pathlib import Path
from time import perf_counter
from typing import Iterable, List, Optional

import pandas as pd

from .collaborators import Toolchain
from .config import AnalysisConfig, config_for_path
from .document import Document, Position
from .pipelines.base import AnalysisRunStats
from .pipelines.staged import for_completion, make
from .timing import STAGE_NAMES


def completion_positions(document: Document, count: int) -> List[Position]:
    """``count`` targets at the ends of evenly spaced lines."""
    lines = document.lines()
    if count <= 0 or not lines:
        return []
    step = max(len(lines) / count, 1.0)
    positions: List[Position] = []
    for index in range(min(count, len(lines))):
        line = min(int(index * step) + 1, len(lines))
        positions.append(Position(line, len(lines[line - 1].rstrip("\r\n"))))
    return positions


def benchmark_document(
    config: AnalysisConfig,
    path: Path | str,
    completions: int = 0,
    toolchain: Optional[Toolchain] = None,
) -> AnalysisRunStats:
    document = Document.from_path(path)
    start = perf_counter()
    pipeline = make(config_for_path(path, config), document, toolchain)
    diagnostics = pipeline.all_errors()
    positions = completion_positions(document, completions)
    for position in positions:
        for_completion(position, pipeline).typer_result()
    duration = perf_counter() - start
    errors = sum(1 for diagnostic in diagnostics if diagnostic.is_error)
    return AnalysisRunStats(
        document=str(path),
        completions=len(positions),
        error_count=errors,
        warning_count=len(diagnostics) - errors,
        duration_seconds=duration,
        stage_timings=pipeline.timing_information(),
    )


def benchmark_documents(
    config: AnalysisConfig,
    paths: Iterable[Path | str],
    completions: int = 0,
    toolchain: Optional[Toolchain] = None,
) -> List[AnalysisRunStats]:
    return [benchmark_document(config, path, completions, toolchain) for path in paths]


def results_to_frame(results: List[AnalysisRunStats]) -> pd.DataFrame:
    rows = []
    for stats in results:
        row = {
            "document": stats.document,
            "completions": stats.completions,
            "errors": stats.error_count,
            "warnings": stats.warning_count,
            "seconds": stats.duration_seconds,
        }
        for stage in STAGE_NAMES:
            row[stage] = stats.stage_timings.get(stage, 0.0)
        rows.append(row)
    columns = ["document", "completions", "errors", "warnings", "seconds", *STAGE_NAMES]
    return pd.DataFrame(rows, columns=columns)
