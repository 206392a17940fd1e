"""Contracts of the components the pipeline drives but does not implement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Protocol, Tuple, runtime_checkable

from .config import AnalysisConfig
from .diagnostics import Diagnostic
from .document import Document, Position

if TYPE_CHECKING:
    from .pipelines.base import ReadResult


class PreprocessError(RuntimeError):
    """The external preprocessor could not be run or exited with an error."""

    def __init__(self, command: str, returncode: Optional[int] = None, stderr: str = ""):
        detail = f" (exit status {returncode})" if returncode is not None else ""
        message = f"Preprocessor {command!r} failed{detail}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


@runtime_checkable
class Preprocessor(Protocol):
    def apply(self, workdir: str, filename: str, source: str, command: str) -> str: ...


@runtime_checkable
class Reader(Protocol):
    def parse(
        self, config: AnalysisConfig, document: Document, target: Optional[Position] = None
    ) -> "ReadResult": ...


@runtime_checkable
class DirectiveApplier(Protocol):
    def apply(self, config: AnalysisConfig, tree: Any) -> AnalysisConfig: ...


@runtime_checkable
class ConfigNormalizer(Protocol):
    def normalize(self, config: AnalysisConfig) -> AnalysisConfig: ...


@runtime_checkable
class MacroRewriter(Protocol):
    def rewrite(self, config: AnalysisConfig, tree: Any) -> Tuple[AnalysisConfig, Any]: ...


@runtime_checkable
class TypeChecker(Protocol):
    def run(self, config: AnalysisConfig, tree: Any) -> Any: ...

    def diagnostics(self, typed: Any) -> List[Diagnostic]: ...


@dataclass(frozen=True)
class Toolchain:
    preprocessor: Preprocessor
    reader: Reader
    directives: DirectiveApplier
    normalizer: ConfigNormalizer
    rewriter: MacroRewriter
    typer: TypeChecker


def default_toolchain() -> Toolchain:
    """The Python-source reference toolchain."""
    from .toolchain.preprocess import CommandPreprocessor
    from .toolchain.reader import ConfigNormalizerAdapter, ModuleDirectives, PythonReader
    from .toolchain.rewrite import RegistryRewriter
    from .toolchain.typer import NameResolver

    return Toolchain(
        preprocessor=CommandPreprocessor(),
        reader=PythonReader(),
        directives=ModuleDirectives(),
        normalizer=ConfigNormalizerAdapter(),
        rewriter=RegistryRewriter(),
        typer=NameResolver(),
    )
