from dataclasses import dataclass, field
from typing import Dict, List

import pytest

from staged_analysis.collaborators import PreprocessError, Toolchain
from staged_analysis.config import AnalysisConfig, normalize
from staged_analysis.diagnostics import Diagnostic, Severity, report
from staged_analysis.document import Document
from staged_analysis.pipelines.base import ReadResult
from staged_analysis.timing import SelfTimeAccountant


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


COSTS = {
    "preprocess": 1.0,
    "read": 2.0,
    "directives": 0.0,
    "rewrite": 3.0,
    "type_check": 4.0,
    "type_diagnostics": 5.0,
}


@dataclass
class Recorder:
    clock: FakeClock
    costs: Dict[str, float] = field(default_factory=lambda: dict(COSTS))
    calls: List[str] = field(default_factory=list)
    seen: Dict[str, object] = field(default_factory=dict)

    def step(self, name: str) -> None:
        self.calls.append(name)
        self.clock.advance(self.costs.get(name, 0.0))


class FakePreprocessor:
    def __init__(self, recorder: Recorder, fail: bool = False):
        self.recorder = recorder
        self.fail = fail

    def apply(self, workdir, filename, source, command):
        self.recorder.step("preprocess")
        if self.fail:
            raise PreprocessError(command, 1, "boom")
        return source.upper()


class FakeReader:
    def __init__(self, recorder: Recorder, parser_errors: int = 1):
        self.recorder = recorder
        self.parser_errors = parser_errors

    def parse(self, config, document, target=None):
        self.recorder.step("read")
        self.recorder.seen.setdefault("read_targets", []).append(target)
        self.recorder.seen["read_text"] = document.text
        return ReadResult(
            tree=("tree", document.text),
            comments=[],
            lexer_errors=[],
            parser_errors=[
                Diagnostic(f"parse error {index}", Severity.ERROR, "parser", index + 1, 0)
                for index in range(self.parser_errors)
            ],
            config=config.with_overrides(rewriters=("from_reader",)),
            no_labels_for_completion=target is not None,
        )


class FakeDirectives:
    def __init__(self, recorder: Recorder):
        self.recorder = recorder

    def apply(self, config, tree):
        self.recorder.step("directives")
        return config.with_overrides(builtins=config.builtins + ("from_directive",))


class FakeNormalizer:
    def normalize(self, config):
        return normalize(config)


class FakeRewriter:
    def __init__(self, recorder: Recorder, diagnostics: int = 0, fault: bool = False):
        self.recorder = recorder
        self.diagnostics = diagnostics
        self.fault = fault

    def rewrite(self, config, tree):
        self.recorder.step("rewrite")
        self.recorder.seen["rewrite_config"] = config
        for index in range(self.diagnostics):
            report(Diagnostic(f"rewrite issue {index}", Severity.ERROR, "rewrite"))
        if self.fault:
            raise RuntimeError("rewriter bug")
        return config.with_overrides(rewriters=config.rewriters + ("rewritten",)), ("rewritten", tree)


class FakeTyper:
    def __init__(self, recorder: Recorder, errors: int = 2):
        self.recorder = recorder
        self.errors = errors

    def run(self, config, tree):
        self.recorder.step("type_check")
        return {"typed": tree, "config": config}

    def diagnostics(self, typed):
        self.recorder.step("type_diagnostics")
        return [
            Diagnostic(f"type error {index}", Severity.ERROR, "typer", index + 1, 0)
            for index in range(self.errors)
        ]


def build_toolchain(recorder: Recorder, **options) -> Toolchain:
    return Toolchain(
        preprocessor=FakePreprocessor(recorder, fail=options.get("preprocess_fails", False)),
        reader=FakeReader(recorder, parser_errors=options.get("parser_errors", 1)),
        directives=FakeDirectives(recorder),
        normalizer=FakeNormalizer(),
        rewriter=FakeRewriter(
            recorder,
            diagnostics=options.get("rewrite_diagnostics", 0),
            fault=options.get("rewrite_fault", False),
        ),
        typer=FakeTyper(recorder, errors=options.get("type_errors", 2)),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def accountant(clock: FakeClock) -> SelfTimeAccountant:
    return SelfTimeAccountant(clock=clock)


@pytest.fixture
def recorder(clock: FakeClock) -> Recorder:
    return Recorder(clock=clock)


@pytest.fixture
def document() -> Document:
    return Document("x = 1\ny = x + 2\n")


@pytest.fixture
def plain_config() -> AnalysisConfig:
    return AnalysisConfig()
