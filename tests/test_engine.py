"""Tests for the fixed-point processing engine."""

import pytest

from docprocessor.config import ErrorMode, ProcessingConfig
from docprocessor.declarations import CorpusIndex
from docprocessor.engine import CancellationToken, EngineState, ProcessingEngine
from docprocessor.errors import CircularReferenceError, TagProcessingError, UnresolvedReferenceError
from docprocessor.processors import CommentProcessor, IncludeProcessor
from docprocessor.processors.base import TagProcessor


@pytest.mark.scenario
class TestScenarios:
    """End-to-end include behaviour."""

    def test_scenario_c_include(self, make_declaration, run_processors):
        a = make_declaration("A", "@include [B]\nHi")
        b = make_declaration("B", "Doc of B")

        report = run_processors([a, b], ["include"])

        assert report.success()
        assert a.content == "Doc of B\nHi"
        assert a.modified
        assert not b.modified

    def test_scenario_d_circular_include(self, make_declaration, run_processors):
        a = make_declaration("A", "@include [B]")
        b = make_declaration("B", "@include [A]")

        report = run_processors([a, b], ["include"])

        assert report.state is EngineState.LIMIT_EXCEEDED
        (error,) = report.errors
        assert isinstance(error, CircularReferenceError)
        assert error.pending == ["A", "B"]
        assert error.message.startswith("Circular references detected in @include statements:")
        assert "A:" in error.message and "B:" in error.message

    def test_self_include_is_reported(self, make_declaration, run_processors):
        a = make_declaration("A", "@include [A]")
        report = run_processors([a], ["include"])
        (error,) = report.errors
        assert "Self-reference detected." in error.message


class TestFixedPoint:
    """Passes, ordering and convergence."""

    def _chain(self, make_declaration):
        a = make_declaration("A", "{@include [B]}!")
        b = make_declaration("B", "{@include [C]} and B")
        c = make_declaration("C", "C")
        return a, b, c

    def test_chain_settles_with_pre_sort(self, make_declaration, run_processors):
        a, b, c = self._chain(make_declaration)
        report = run_processors([a, b, c], ["include"])
        assert a.content == "C and B!"
        assert b.content == "C and B"
        assert report.passes["include"] == 1

    def test_chain_settles_without_pre_sort(self, make_declaration, run_processors):
        a, b, c = self._chain(make_declaration)
        report = run_processors([a, b, c], ["include"], arguments={"include": {"pre-sort": False}})
        assert a.content == "C and B!"
        assert report.passes["include"] == 2

    def test_result_does_not_depend_on_order(self, make_declaration, run_processors):
        first = self._chain(make_declaration)
        second = self._chain(make_declaration)
        run_processors(list(first), ["include"], arguments={"include": {"pre-sort": False}})
        run_processors(list(reversed(second)), ["include"], arguments={"include": {"pre-sort": False}})
        assert [d.content for d in first] == [d.content for d in second]

    def test_untagged_corpus_is_untouched(self, make_declaration, run_processors):
        plain = make_declaration("A", "Nothing to do here.")
        report = run_processors([plain], ["include", "comment", "include-arg"])
        assert report.success()
        assert plain.content == "Nothing to do here."
        assert report.modified() == []

    def test_pass_ceiling(self, make_declaration):
        class Growing(TagProcessor):
            processor_id = "growing"
            supported_tags = frozenset({"grow"})

            def transform_inline(self, tag_text, occurrence, declaration, context):
                return tag_text

            def transform_block(self, tag_text, occurrence, declaration, context):
                return tag_text + "x"

        declaration = make_declaration("A", "@grow a")
        engine = ProcessingEngine([Growing()], ProcessingConfig(process_limit=3))
        report = engine.run([declaration])

        assert report.state is EngineState.LIMIT_EXCEEDED
        assert report.passes["growing"] == 3
        assert isinstance(report.errors[0], CircularReferenceError)

    def test_inline_ceiling_reports_every_pending_doc(self, make_declaration):
        class GrowingInline(TagProcessor):
            processor_id = "growing-inline"
            supported_tags = frozenset({"grow"})

            def transform_inline(self, tag_text, occurrence, declaration, context):
                return "x" + tag_text

            def transform_block(self, tag_text, occurrence, declaration, context):
                return tag_text

        a = make_declaration("A", "{@grow a}")
        b = make_declaration("B", "{@grow b}")
        engine = ProcessingEngine([GrowingInline()], ProcessingConfig(process_limit=3))
        report = engine.run([a, b])

        assert report.state is EngineState.LIMIT_EXCEEDED
        (error,) = report.errors
        assert isinstance(error, CircularReferenceError)
        assert error.pending == ["A", "B"]
        assert a.content == "xxxx{@grow a}"

    def test_processors_run_in_order(self, make_declaration):
        a = make_declaration("A", "{@include [B]}")
        b = make_declaration("B", "Text{@comment hidden}")
        engine = ProcessingEngine([IncludeProcessor(), CommentProcessor()])
        engine.run([a, b])
        assert a.content == "Text"


class TestFailures:
    """Error modes, fail-fast and cancellation."""

    def test_unresolved_include_wraps_cause(self, make_declaration, run_processors):
        a = make_declaration("A", "@include [Missing]")
        report = run_processors([a], ["include"])

        assert report.state is EngineState.FAILED
        (error,) = report.errors
        assert isinstance(error, TagProcessingError)
        assert isinstance(error.cause, UnresolvedReferenceError)
        assert error.message.startswith("Doc processor include failed processing doc:")
        assert ">>>@include [Missing]<<<" in error.message
        assert 'Reference not found: "Missing".' in error.message

    def test_undocumented_target_message(self, make_declaration, run_processors):
        a = make_declaration("A", "@include [B]")
        b = make_declaration("B", "")
        report = run_processors([a, b], ["include"])
        assert 'Reference found, but no documentation found for: "B".' in report.errors[0].message

    def test_raise_for_errors(self, make_declaration, run_processors):
        report = run_processors([make_declaration("A", "@include [Missing]")], ["include"])
        with pytest.raises(TagProcessingError):
            report.raise_for_errors()

    def test_fail_fast_stops_later_processors(self, make_declaration, run_processors):
        broken = make_declaration("A", "@include [Missing]")
        other = make_declaration("C", "Keep{@comment note}")

        report = run_processors([broken, other], ["include", "comment"], fail_fast=True)
        assert other.content == "Keep{@comment note}"
        assert len(report.errors) == 1

        broken = make_declaration("A", "@include [Missing]")
        other = make_declaration("C", "Keep{@comment note}")
        run_processors([broken, other], ["include", "comment"])
        assert other.content == "Keep"

    def test_inline_error_mode_writes_error_block(self, make_declaration, run_processors):
        broken = make_declaration("A", "@include [Missing]")
        fine = make_declaration("B", "Doc of B")
        user = make_declaration("C", "@include [B]")

        report = run_processors([broken, fine, user], ["include"], error_mode=ErrorMode.INLINE)

        assert broken.content.startswith("## ⚠️ Error from include")
        assert "❗@include [Missing]❗" in broken.content
        assert user.content == "Doc of B"
        assert len(report.errors) == 1
        assert report.state is EngineState.FAILED

    def test_cancellation_between_passes(self, make_declaration):
        a = make_declaration("A", "@include [B]\nHi")
        b = make_declaration("B", "Doc of B")
        token = CancellationToken()
        token.cancel()

        engine = ProcessingEngine.from_config(ProcessingConfig(processors=["include"]), token)
        report = engine.run(CorpusIndex([a, b]))

        assert report.cancelled
        assert engine.state is EngineState.CANCELLED
        assert a.content == "@include [B]\nHi"

    def test_unclosed_tag_warns(self, make_declaration, run_processors):
        a = make_declaration("A", "text {@include [B]")
        b = make_declaration("B", "Doc of B")
        report = run_processors([a, b], ["include"])
        assert any("has no closing brace" in warning for warning in report.warnings)
        assert a.content == "text {@include [B]"

    def test_unclosed_unknown_tag_hiding_a_block_tag_warns(self, make_declaration, run_processors):
        a = make_declaration("A", "text {@foo\n@include [B]")
        b = make_declaration("B", "Doc of B")
        report = run_processors([a, b], ["include"])
        assert any("hides the @include block tag" in warning for warning in report.warnings)
        assert a.content == "text {@foo\n@include [B]"

    def test_unclosed_unknown_tag_alone_is_quiet(self, make_declaration, run_processors):
        a = make_declaration("A", "Costs {@foo and more")
        report = run_processors([a], ["include"])
        assert report.warnings == []
