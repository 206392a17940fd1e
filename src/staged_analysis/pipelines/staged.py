"""Four-stage lazy analysis pipeline.

preprocess -> read -> rewrite -> type check, plus the type diagnostics which
are deferred on their own. Every stage is a memoized lazy cell whose self time
is charged to one of five shared counters. Nothing runs until an accessor
needs it; forcing a late stage forces the earlier ones exactly once.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..collaborators import Toolchain, default_toolchain
from ..config import AnalysisConfig
from ..diagnostics import Diagnostic, collect_diagnostics
from ..document import Document, Position
from ..lazy import Lazy
from ..logging_utils import get_logger
from ..timing import SelfTimeAccountant, TimingCounters
from .base import Comment, ReadResult, RewriteResult, TypingStage

logger = get_logger("pipeline")


class Pipeline:
    """One analysis of one document, optionally biased toward a target position.

    Instances are built by :func:`process`, :func:`make` and
    :func:`for_completion`. Apart from stage memoization and counter updates
    they are immutable.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        raw_document: Document,
        target: Optional[Position],
        toolchain: Toolchain,
        counters: TimingCounters,
        accountant: SelfTimeAccountant,
        source: Lazy[Document],
        reader: Lazy[Tuple[ReadResult, AnalysisConfig]],
        rewrite: Lazy[RewriteResult],
        typer: Lazy[TypingStage],
    ):
        self._config = config
        self._raw_document = raw_document
        self._target = target
        self._toolchain = toolchain
        self._counters = counters
        self._accountant = accountant
        self._source = source
        self._reader = reader
        self._rewrite = rewrite
        self._typer = typer

    @property
    def raw_document(self) -> Document:
        return self._raw_document

    @property
    def input_config(self) -> AnalysisConfig:
        return self._config

    @property
    def target(self) -> Optional[Position]:
        return self._target

    @property
    def toolchain(self) -> Toolchain:
        return self._toolchain

    @property
    def counters(self) -> TimingCounters:
        return self._counters

    @property
    def accountant(self) -> SelfTimeAccountant:
        return self._accountant

    def input_document(self) -> Document:
        """The effective (possibly preprocessed) document."""
        return self._source.force()

    def offset_of(self, position: Position) -> int:
        return self.input_document().offset_of(position)

    # Read stage

    def reader(self) -> Tuple[ReadResult, AnalysisConfig]:
        return self._reader.force()

    def reader_config(self) -> AnalysisConfig:
        return self.reader()[1]

    def reader_parsetree(self) -> Any:
        return self.reader()[0].tree

    def reader_comments(self) -> List[Comment]:
        return self.reader()[0].comments

    def reader_lexer_errors(self) -> List[Diagnostic]:
        return self.reader()[0].lexer_errors

    def reader_parser_errors(self) -> List[Diagnostic]:
        return self.reader()[0].parser_errors

    def reader_no_labels_for_completion(self) -> bool:
        return self.reader()[0].no_labels_for_completion

    # Rewrite stage

    def rewrite(self) -> RewriteResult:
        return self._rewrite.force()

    def rewrite_parsetree(self) -> Any:
        return self.rewrite().tree

    def rewrite_errors(self) -> List[Diagnostic]:
        return self.rewrite().errors

    def final_config(self) -> AnalysisConfig:
        return self.rewrite().config

    # Type-check stage

    def typer(self) -> TypingStage:
        return self._typer.force()

    def typer_result(self) -> Any:
        return self.typer().result

    def typer_errors(self) -> List[Diagnostic]:
        return self.typer().errors.force()

    def all_errors(self) -> List[Diagnostic]:
        """Every diagnostic of every stage, in stage order. Forces everything."""
        return [
            *self.reader_lexer_errors(),
            *self.reader_parser_errors(),
            *self.rewrite_errors(),
            *self.typer_errors(),
        ]

    def timing_information(self) -> Dict[str, float]:
        return self._counters.snapshot()

    def __repr__(self) -> str:
        target = f", target={self._target}" if self._target is not None else ""
        return f"Pipeline({self._config.filename!r}{target})"


def process(
    config: AnalysisConfig,
    raw_document: Document,
    *,
    toolchain: Optional[Toolchain] = None,
    counters: Optional[TimingCounters] = None,
    accountant: Optional[SelfTimeAccountant] = None,
    for_completion: Optional[Position] = None,
) -> Pipeline:
    """Wire the stages for ``raw_document``; nothing is evaluated yet."""
    tools = toolchain or default_toolchain()
    if counters is None:
        counters = TimingCounters() if accountant is None else TimingCounters(accountant=accountant)
    if accountant is None:
        accountant = counters.accountant

    preprocessor = config.preprocessor
    if preprocessor is None:
        source: Lazy[Document] = Lazy.from_value(raw_document)
    else:

        def run_preprocessor() -> Document:
            text = tools.preprocessor.apply(
                preprocessor.workdir,
                config.filename,
                raw_document.text,
                preprocessor.command,
            )
            return Document(text)

        source = accountant.timed_lazy(counters.preprocess, run_preprocessor)

    def run_reader() -> Tuple[ReadResult, AnalysisConfig]:
        document = source.force()
        result = tools.reader.parse(config, document, for_completion)
        revised = result.config if result.config is not None else config
        revised = tools.directives.apply(revised, result.tree)
        revised = tools.normalizer.normalize(revised)
        return result, revised

    reader = accountant.timed_lazy(counters.read, run_reader)

    def run_rewrite() -> RewriteResult:
        result, reader_config = reader.force()
        collected = collect_diagnostics(
            lambda: tools.rewriter.rewrite(reader_config, result.tree),
            reader_config.warnings,
            stage="rewrite",
            filename=reader_config.filename,
        )
        rewritten_config, tree = collected.value
        return RewriteResult(config=rewritten_config, tree=tree, errors=collected.diagnostics)

    rewrite = accountant.timed_lazy(counters.rewrite, run_rewrite)

    def run_typer() -> TypingStage:
        rewritten = rewrite.force()
        typed = tools.typer.run(rewritten.config, rewritten.tree)
        errors = accountant.timed_lazy(
            counters.type_diagnostics, lambda: tools.typer.diagnostics(typed)
        )
        return TypingStage(result=typed, errors=errors)

    typer = accountant.timed_lazy(counters.type_check, run_typer)

    logger.debug(
        "Prepared pipeline for %s%s",
        config.filename,
        f" at {for_completion}" if for_completion is not None else "",
    )
    return Pipeline(
        config=config,
        raw_document=raw_document,
        target=for_completion,
        toolchain=tools,
        counters=counters,
        accountant=accountant,
        source=source,
        reader=reader,
        rewrite=rewrite,
        typer=typer,
    )


def make(
    config: AnalysisConfig,
    raw_document: Document,
    toolchain: Optional[Toolchain] = None,
    accountant: Optional[SelfTimeAccountant] = None,
) -> Pipeline:
    """Build a fresh pipeline over a normalized copy of ``config``."""
    tools = toolchain or default_toolchain()
    return process(
        tools.normalizer.normalize(config),
        raw_document,
        toolchain=tools,
        accountant=accountant,
    )


def for_completion(position: Position, pipeline: Pipeline) -> Pipeline:
    """A second pipeline over the same input, read up to ``position``.

    Stages are recomputed from scratch; the timing counters and their
    accountant are shared with ``pipeline``.
    """
    return process(
        pipeline.input_config,
        pipeline.raw_document,
        toolchain=pipeline.toolchain,
        counters=pipeline.counters,
        accountant=pipeline.accountant,
        for_completion=position,
    )
