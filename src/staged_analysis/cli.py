"""Typer CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .collaborators import PreprocessError
from .config import AnalysisConfig, config_for_path, load_analysis_config
from .diagnostics import Diagnostic
from .document import Document, Position
from .evaluation import benchmark_documents, results_to_frame
from .logging_utils import get_logger, set_global_log_level
from .pipelines.staged import for_completion, make

app = typer.Typer(add_completion=False, help="Lazy staged analysis of Python sources")
console = Console()
logger = get_logger("cli")


def _load_config(config_path: Optional[Path]) -> AnalysisConfig:
    if config_path is None:
        return AnalysisConfig()
    return load_analysis_config(config_path)


def _parse_position(value: Optional[str]) -> Optional[Position]:
    if value is None:
        return None
    try:
        return Position.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _format_stage_name(key: str) -> str:
    label = key.replace("_", " ").strip()
    return label.title() if label else key


def _print_timings(title: str, timings: Dict[str, float]) -> None:
    if not timings:
        return
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Stage")
    table.add_column("Seconds", justify="right")
    for stage, seconds in timings.items():
        table.add_row(_format_stage_name(stage), f"{seconds:.4f}")
    console.print(table)


def _print_diagnostics(filename: str, diagnostics: List[Diagnostic]) -> None:
    if not diagnostics:
        console.print(f"[bold green]No diagnostics[/bold green] for {filename}")
        return
    table = Table(title=f"Diagnostics: {filename}", show_header=True, header_style="bold magenta")
    table.add_column("Location", justify="right")
    table.add_column("Stage")
    table.add_column("Severity")
    table.add_column("Message")
    for diagnostic in diagnostics:
        style = "red" if diagnostic.is_error else "yellow"
        table.add_row(
            diagnostic.location(),
            diagnostic.stage,
            f"[{style}]{diagnostic.severity.value}[/{style}]",
            diagnostic.message,
        )
    console.print(table)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log stage timings as they happen"),
) -> None:
    set_global_log_level(logging.DEBUG if verbose else logging.INFO)


@app.command()
def analyze(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Python source to analyze"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    at: Optional[str] = typer.Option(
        None, "--at", help="Analyze only up to LINE[:COLUMN], as a completion query would"
    ),
    measure: bool = typer.Option(False, "--measure", help="Print per-stage self times"),
) -> None:
    position = _parse_position(at)
    config = config_for_path(path, _load_config(config_path))
    pipeline = make(config, Document.from_path(path))
    if position is not None:
        pipeline = for_completion(position, pipeline)

    try:
        diagnostics = pipeline.all_errors()
    except PreprocessError as exc:
        console.print(f"[bold red]Preprocessing failed[/bold red]: {exc}")
        raise typer.Exit(code=2) from exc

    _print_diagnostics(path.name, diagnostics)
    if measure:
        _print_timings("Stage Timings", pipeline.timing_information())
    logger.info("%s: %d diagnostic(s)", path.name, len(diagnostics))
    if any(diagnostic.is_error for diagnostic in diagnostics):
        raise typer.Exit(code=1)


@app.command()
def benchmark(
    paths: List[Path] = typer.Argument(..., help="Python sources to analyze", metavar="FILE"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
    completions: int = typer.Option(
        0, "--completions", "-n", min=0, help="Completion queries to replay per document"
    ),
) -> None:
    config = _load_config(config_path)
    try:
        results = benchmark_documents(config, paths, completions)
    except PreprocessError as exc:
        console.print(f"[bold red]Preprocessing failed[/bold red]: {exc}")
        raise typer.Exit(code=2) from exc
    frame = results_to_frame(results)
    table = Table(title="Analysis Benchmarks", show_lines=False)
    for column in frame.columns:
        table.add_column(column)
    for _, row in frame.iterrows():
        table.add_row(
            *(f"{value:.4f}" if isinstance(value, float) else str(value) for value in row)
        )
    console.print(table)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
