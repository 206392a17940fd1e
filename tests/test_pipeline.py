from dataclasses import replace

import pytest

from conftest import COSTS, FakeReader, build_toolchain
from staged_analysis.collaborators import PreprocessError
from staged_analysis.config import AnalysisConfig, PreprocessorConfig
from staged_analysis.document import Position
from staged_analysis.pipelines.staged import for_completion, make, process
from staged_analysis.timing import STAGE_NAMES, SelfTimeAccountant


def _with_pp(config: AnalysisConfig) -> AnalysisConfig:
    return config.with_overrides(preprocessor=PreprocessorConfig(command="upper"))


def test_nothing_runs_until_an_accessor_is_called(recorder, accountant, document, plain_config):
    pipeline = make(plain_config, document, build_toolchain(recorder), accountant)
    assert recorder.calls == []
    assert pipeline.raw_document is document
    assert pipeline.input_config.normalized
    assert all(value == 0.0 for value in pipeline.timing_information().values())


def test_later_stage_forces_earlier_stages_once_in_order(recorder, accountant, document, plain_config):
    pipeline = make(_with_pp(plain_config), document, build_toolchain(recorder), accountant)

    pipeline.typer_result()
    assert recorder.calls == ["preprocess", "read", "directives", "rewrite", "type_check"]

    pipeline.reader_parsetree()
    pipeline.final_config()
    pipeline.input_document()
    assert recorder.calls == ["preprocess", "read", "directives", "rewrite", "type_check"]


def test_each_stage_charges_its_own_counter(clock, recorder, accountant, document, plain_config):
    pipeline = make(_with_pp(plain_config), document, build_toolchain(recorder), accountant)
    start = clock.now

    assert len(pipeline.typer_errors()) == 2

    timings = pipeline.timing_information()
    assert list(timings) == list(STAGE_NAMES)
    assert timings == {
        "preprocess": pytest.approx(COSTS["preprocess"]),
        "read": pytest.approx(COSTS["read"]),
        "rewrite": pytest.approx(COSTS["rewrite"]),
        "type_check": pytest.approx(COSTS["type_check"]),
        "type_diagnostics": pytest.approx(COSTS["type_diagnostics"]),
    }
    assert sum(timings.values()) == pytest.approx(clock.now - start)


def test_repeated_access_uses_the_cache(recorder, accountant, document, plain_config):
    pipeline = make(plain_config, document, build_toolchain(recorder), accountant)
    first = pipeline.typer_result()
    errors = pipeline.typer_errors()
    before = pipeline.timing_information()

    assert pipeline.typer_result() is first
    assert pipeline.typer_errors() is errors
    assert pipeline.timing_information() == before
    assert recorder.calls.count("type_check") == 1
    assert recorder.calls.count("type_diagnostics") == 1


def test_preprocessor_output_feeds_the_reader(recorder, accountant, document, plain_config):
    pipeline = make(_with_pp(plain_config), document, build_toolchain(recorder), accountant)
    assert pipeline.input_document().text == document.text.upper()
    pipeline.reader()
    assert recorder.seen["read_text"] == document.text.upper()
    assert pipeline.offset_of(Position(2, 1)) == len("x = 1\n") + 1


def test_without_preprocessor_the_raw_document_is_used(recorder, accountant, document, plain_config):
    pipeline = make(plain_config, document, build_toolchain(recorder), accountant)
    assert pipeline.input_document() is document
    pipeline.typer_errors()
    assert "preprocess" not in recorder.calls
    assert pipeline.timing_information()["preprocess"] == 0.0


def test_preprocess_failure_is_fatal_and_memoized(recorder, accountant, document, plain_config):
    tools = build_toolchain(recorder, preprocess_fails=True)
    pipeline = make(_with_pp(plain_config), document, tools, accountant)

    with pytest.raises(PreprocessError) as first:
        pipeline.typer_result()
    with pytest.raises(PreprocessError) as second:
        pipeline.reader_comments()

    assert first.value is second.value
    assert recorder.calls == ["preprocess"]
    timings = pipeline.timing_information()
    assert timings["preprocess"] == pytest.approx(COSTS["preprocess"])
    assert timings["read"] == 0.0
    assert timings["type_check"] == 0.0


def test_configuration_revisions_flow_forward(recorder, accountant, document, plain_config):
    pipeline = make(plain_config, document, build_toolchain(recorder), accountant)

    reader_config = pipeline.reader_config()
    assert reader_config.rewriters == ("from_reader",)
    assert reader_config.builtins == ("from_directive",)
    assert reader_config.normalized
    assert "rewrite_config" not in recorder.seen

    final = pipeline.final_config()
    assert recorder.seen["rewrite_config"] == reader_config
    assert final.rewriters == ("from_reader", "rewritten")
    assert pipeline.typer_result()["config"] == final
    assert pipeline.input_config.rewriters == ()


def test_rewrite_diagnostics_do_not_abort_the_stage(recorder, accountant, document, plain_config):
    tools = build_toolchain(recorder, rewrite_diagnostics=3)
    pipeline = make(plain_config, document, tools, accountant)

    errors = pipeline.rewrite_errors()
    assert [e.message for e in errors] == ["rewrite issue 0", "rewrite issue 1", "rewrite issue 2"]
    assert pipeline.rewrite_parsetree() == ("rewritten", pipeline.reader_parsetree())


def test_rewriter_faults_propagate(recorder, accountant, document, plain_config):
    tools = build_toolchain(recorder, rewrite_fault=True)
    pipeline = make(plain_config, document, tools, accountant)
    with pytest.raises(RuntimeError, match="rewriter bug"):
        pipeline.typer_result()
    with pytest.raises(RuntimeError, match="rewriter bug"):
        pipeline.rewrite_errors()
    assert recorder.calls.count("rewrite") == 1
    assert pipeline.reader_parser_errors()


def test_typed_result_does_not_pay_for_type_diagnostics(recorder, accountant, document, plain_config):
    pipeline = make(plain_config, document, build_toolchain(recorder), accountant)
    pipeline.typer_result()
    assert "type_diagnostics" not in recorder.calls
    assert pipeline.timing_information()["type_diagnostics"] == 0.0
    assert not pipeline.typer().errors.is_forced


def test_all_errors_lists_stages_in_order(recorder, accountant, document, plain_config):
    tools = build_toolchain(recorder, parser_errors=1, rewrite_diagnostics=1, type_errors=1)
    pipeline = make(plain_config, document, tools, accountant)
    assert [d.stage for d in pipeline.all_errors()] == ["parser", "rewrite", "typer"]


def test_completion_clone_shares_counters(clock, recorder, accountant, document, plain_config):
    original = make(_with_pp(plain_config), document, build_toolchain(recorder), accountant)
    original.typer_errors()
    once = original.timing_information()
    typed = original.typer_result()

    clone = for_completion(Position(2, 3), original)
    assert clone.counters is original.counters
    assert clone.raw_document is original.raw_document
    assert clone.input_config is original.input_config
    assert clone.target == Position(2, 3)
    assert clone.reader_no_labels_for_completion()
    assert not original.reader_no_labels_for_completion()

    clone.typer_errors()
    twice = original.timing_information()
    assert twice == {name: pytest.approx(2 * seconds) for name, seconds in once.items()}
    assert clone.timing_information() == twice
    assert recorder.seen["read_targets"] == [None, Position(2, 3)]
    assert recorder.calls.count("preprocess") == 2
    assert original.typer_result() is typed
    assert clone.typer_result() is not typed


def test_process_accepts_existing_counters(recorder, accountant, document, plain_config):
    first = process(plain_config, document, toolchain=build_toolchain(recorder), accountant=accountant)
    first.reader()
    second = process(
        plain_config,
        document,
        toolchain=build_toolchain(recorder),
        counters=first.counters,
        accountant=accountant,
    )
    second.reader()
    assert first.timing_information()["read"] == pytest.approx(2 * COSTS["read"])


def test_parser_diagnostic_scenario(clock, recorder, accountant, document, plain_config):
    tools = build_toolchain(recorder, parser_errors=1, rewrite_diagnostics=0, type_errors=2)
    pipeline = make(plain_config, document, tools, accountant)
    start = clock.now

    assert pipeline.typer_result()["typed"] == ("rewritten", pipeline.reader_parsetree())
    assert len(pipeline.typer_errors()) == 2
    assert len(pipeline.reader_parser_errors()) == 1
    assert pipeline.rewrite_errors() == []

    timings = pipeline.timing_information()
    assert len(timings) == 5
    assert all(seconds >= 0.0 for seconds in timings.values())
    assert timings["preprocess"] == 0.0
    assert sum(timings.values()) <= clock.now - start + 1e-9


class _ReaderForcingOther(FakeReader):
    def __init__(self, recorder, other):
        super().__init__(recorder)
        self.other = other

    def parse(self, config, document, target=None):
        self.other.reader()
        return super().parse(config, document, target)


def _forcing_toolchain(recorder, other):
    return replace(build_toolchain(recorder), reader=_ReaderForcingOther(recorder, other))


def test_reused_counters_bring_their_accountant(recorder, accountant, document, plain_config):
    first = make(plain_config, document, build_toolchain(recorder), accountant)
    second = process(
        first.input_config, document, toolchain=build_toolchain(recorder), counters=first.counters
    )
    assert second.accountant is first.accountant
    assert first.counters.accountant is accountant


def test_nested_read_across_instances_sharing_counters(clock, recorder, accountant, document, plain_config):
    first = make(plain_config, document, build_toolchain(recorder), accountant)
    second = process(
        first.input_config,
        document,
        toolchain=_forcing_toolchain(recorder, first),
        counters=first.counters,
        accountant=SelfTimeAccountant(clock),
    )
    start = clock.now

    second.reader()

    elapsed = clock.now - start
    assert elapsed == pytest.approx(2 * COSTS["read"])
    assert first.timing_information()["read"] == pytest.approx(elapsed)
    assert first.counters.total == pytest.approx(elapsed)


def test_nested_read_across_independent_instances(clock, recorder, document, plain_config):
    first = make(plain_config, document, build_toolchain(recorder), SelfTimeAccountant(clock))
    second = make(
        plain_config, document, _forcing_toolchain(recorder, first), SelfTimeAccountant(clock)
    )
    start = clock.now

    second.reader()

    elapsed = clock.now - start
    assert first.timing_information()["read"] == pytest.approx(COSTS["read"])
    assert second.timing_information()["read"] == pytest.approx(COSTS["read"])
    assert first.counters.total + second.counters.total == pytest.approx(elapsed)
