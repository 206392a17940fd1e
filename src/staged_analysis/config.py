"""Configuration dataclasses and helpers for the analysis pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .diagnostics import WarningsPolicy


@dataclass(frozen=True)
class QueryConfig:
    filename: str = "<stdin>.py"
    directory: str = "."


@dataclass(frozen=True)
class PreprocessorConfig:
    command: str
    workdir: str = "."


@dataclass(frozen=True)
class AnalysisConfig:
    query: QueryConfig = field(default_factory=QueryConfig)
    preprocessor: Optional[PreprocessorConfig] = None
    warnings: WarningsPolicy = WarningsPolicy.DEFAULT
    rewriters: Tuple[str, ...] = ()
    builtins: Tuple[str, ...] = ()
    normalized: bool = False

    @property
    def filename(self) -> str:
        return self.query.filename

    @property
    def path(self) -> Path:
        return Path(self.query.directory) / self.query.filename

    def with_overrides(self, **changes: Any) -> "AnalysisConfig":
        """Return a revised copy; revisions drop the normalized flag."""
        changes.setdefault("normalized", False)
        return replace(self, **changes)


def normalize(config: AnalysisConfig) -> AnalysisConfig:
    """Canonical form of ``config``. Pure and idempotent."""
    if config.normalized:
        return config
    query = replace(config.query, directory=os.path.abspath(config.query.directory))
    preprocessor = config.preprocessor
    if preprocessor is not None:
        preprocessor = replace(preprocessor, workdir=os.path.abspath(preprocessor.workdir))
    return replace(
        config,
        query=query,
        preprocessor=preprocessor,
        warnings=WarningsPolicy.parse(config.warnings),
        rewriters=tuple(dict.fromkeys(config.rewriters)),
        builtins=tuple(dict.fromkeys(config.builtins)),
        normalized=True,
    )


def _load_section(data: Dict[str, Any], section_key: str, target_type: Any) -> Any:
    section = data.get(section_key) or {}
    return target_type(**section)


def _load_preprocessor(data: Dict[str, Any]) -> Optional[PreprocessorConfig]:
    section = data.get("preprocessor")
    if not section:
        return None
    if isinstance(section, str):
        return PreprocessorConfig(command=section)
    return _load_section(data, "preprocessor", PreprocessorConfig)


def config_for_path(path: Path | str, base: Optional[AnalysisConfig] = None) -> AnalysisConfig:
    """Point ``base`` (or the defaults) at the file being analyzed."""
    source = Path(path)
    query = QueryConfig(filename=source.name, directory=str(source.parent))
    return replace(base or AnalysisConfig(), query=query, normalized=False)


def load_analysis_config(path: str | Path) -> AnalysisConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw: Dict[str, Any] = yaml.safe_load(handle) or {}

    return AnalysisConfig(
        query=_load_section(raw, "query", QueryConfig),
        preprocessor=_load_preprocessor(raw),
        warnings=WarningsPolicy.parse(raw.get("warnings") or WarningsPolicy.DEFAULT),
        rewriters=tuple(raw.get("rewriters") or ()),
        builtins=tuple(raw.get("builtins") or ()),
    )
