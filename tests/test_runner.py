"""
Tests for the Runner: fixpoint loop, conflicts, isolation, syntax gating,
parallelism and cancellation.
"""

import pytest

from conftest import (
    CallbackAdapter, CallbackFixRule, CallbackRule, CrashingRule, GrowingRule, SlowRule, WordRule,
    statuses,
)
from engine.errors import NoRulesError
from engine.runner import Runner
from engine.source import Source
from engine.types import IssueStatus, Location, Severity
from rules import EmptyExpressionRule, RedundantParenthesesRule, TrailingWhitespaceRule


class TestRunnerPasses:
    """Detection passes with and without autocorrection."""

    def test_requires_rules(self):
        with pytest.raises(NoRulesError):
            Runner([])

    def test_single_pass_without_autocorrect(self):
        rule = WordRule("Fix", "foo", "bar")
        source = Source("foo foo\n")
        report = Runner([rule]).run([source])

        source_report = report.sources[0]
        assert source_report.passes == 1
        assert source_report.iterations == 0
        assert [i.status for i in source_report.issues] == [IssueStatus.REPORTED] * 2
        assert source.code == "foo foo\n"
        assert source.issues == source_report.issues

    def test_accepts_plain_strings(self):
        report = Runner([WordRule("Fix", "foo")]).run(["foo\n"])
        assert len(report.issues) == 1

    def test_convergence_bound_for_independent_issues(self):
        rule = WordRule("Fix", "foo", "bar")
        source = Source("foo foo foo\n")
        report = Runner([rule]).run([source], autocorrect=True)

        source_report = report.sources[0]
        assert source.code == "bar bar bar\n"
        assert source_report.passes == 2
        assert source_report.iterations == 1
        assert source_report.converged
        assert all(i.corrected for i in source_report.issues)
        assert report.corrected_count == 3

    def test_idempotence(self):
        rules = [RedundantParenthesesRule(), TrailingWhitespaceRule()]
        first = Source("if (x > 1)  \n  x\nend\n")
        Runner(rules).run([first], autocorrect=True)

        second = Source(first.code)
        report = Runner(rules).run([second], autocorrect=True)

        assert second.code == first.code
        assert not second.is_corrected
        assert report.corrected_count == 0
        assert report.sources[0].passes == 1

    def test_issues_sorted_by_position(self):
        rules = [WordRule("Second", "bar"), WordRule("First", "foo")]
        report = Runner(rules).run([Source("foo bar foo\n")])

        locations = [i.location for i in report.issues]
        assert locations == [Location(1, 1), Location(1, 5), Location(1, 9)]
        assert [i.rule for i in report.issues] == ["Test/First", "Test/Second", "Test/First"]

    def test_disabled_rule_is_not_run(self):
        rule = WordRule("Fix", "foo", config={"Enabled": False})
        report = Runner([rule]).run([Source("foo\n")])

        assert rule.detect_calls == 0
        assert report.issues == []

    def test_excluded_path_is_not_run(self):
        rule = WordRule("Fix", "foo", config={"Excluded": ["skip.rb"]})
        report = Runner([rule]).run([Source("foo\n", path="skip.rb"), Source("foo\n", path="keep.rb")])

        assert rule.detect_calls == 1
        assert [len(r.issues) for r in report.sources] == [0, 1]

    def test_configured_severity(self):
        rule = WordRule("Fix", "foo", config={"Severity": "Error"})
        report = Runner([rule]).run([Source("foo\n")])

        assert report.issues[0].severity == Severity.ERROR
        assert not report.success(Severity.ERROR)

    def test_success_respects_fail_level(self):
        report = Runner([WordRule("Fix", "foo")]).run([Source("foo\n")])

        assert not report.success()
        assert report.success(Severity.WARNING)

    def test_suppressed_issue_is_not_corrected(self):
        rule = WordRule("Fix", "foo", "bar")
        source = Source("foo # autolint:disable Test/Fix\nfoo\n")
        report = Runner([rule]).run([source], autocorrect=True)

        assert source.code == "foo # autolint:disable Test/Fix\nbar\n"
        assert statuses(report.issues) == {"Test/Fix": ["disabled", "corrected"]}
        assert report.success()


class TestCorrectionConflicts:
    """Overlapping edits across rules."""

    def test_overlapping_edits_on_same_range(self):
        first = WordRule("First", "hello", "howdy")
        second = WordRule("Second", "hello", "hullo")
        source = Source("hello world\n")
        report = Runner([first, second]).run([source], autocorrect=True)

        assert statuses(report.issues) == {
            "Test/First": ["corrected"],
            "Test/Second": ["unresolved_conflict"],
        }
        assert source.code == "howdy world\n"
        assert "hullo" not in source.code

    @pytest.mark.parametrize("reverse", [False, True])
    def test_earliest_position_wins_regardless_of_rule_order(self, reverse):
        early = WordRule("Early", "hello", "hi")
        late = WordRule("Late", "llo w", "xx")
        rules = [late, early] if reverse else [early, late]

        source = Source("hello world\n")
        report = Runner(rules).run([source], autocorrect=True)

        assert statuses(report.issues) == {
            "Test/Early": ["corrected"],
            "Test/Late": ["unresolved_conflict"],
        }
        assert source.code == "hi world\n"

    def test_touching_edits_take_two_iterations(self):
        rules = [RedundantParenthesesRule(), TrailingWhitespaceRule()]
        source = Source("if (x > 1)  \n  x\nend\n")
        report = Runner(rules).run([source], autocorrect=True)

        source_report = report.sources[0]
        assert source.code == "if x > 1\n  x\nend\n"
        assert source_report.iterations == 2
        assert source_report.passes == 3
        assert statuses(source_report.issues) == {
            "Style/RedundantParentheses": ["corrected"],
            "Layout/TrailingWhitespace": ["corrected"],
        }


class TestScenarios:
    """End-to-end behavior of the shipped rules."""

    def test_empty_expression_is_reported_not_corrected(self):
        source = Source("a = ()")
        report = Runner([EmptyExpressionRule()]).run([source], autocorrect=True)

        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.rule == "Lint/EmptyExpression"
        assert issue.location == Location(1, 5)
        assert issue.end_location == Location(1, 6)
        assert issue.status is IssueStatus.REPORTED
        assert source.code == "a = ()"

    def test_redundant_parentheses_corrected(self):
        source = Source("if (x > 1)\n  x\nend")
        report = Runner([RedundantParenthesesRule()]).run([source], autocorrect=True)

        assert len(report.issues) == 1
        assert report.issues[0].status is IssueStatus.CORRECTED
        assert source.code == "if x > 1\n  x\nend"
        assert source.original_code == "if (x > 1)\n  x\nend"


class TestSyntaxGating:
    """Invalid sources only ever report the syntax failure."""

    @pytest.mark.parametrize("autocorrect", [False, True])
    def test_only_syntax_issue(self, autocorrect):
        rule = WordRule("Fix", "def", "xyz")
        source = Source("def foo(\n")
        report = Runner([rule, EmptyExpressionRule()]).run([source], autocorrect=autocorrect)

        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.rule == "Lint/Syntax"
        assert issue.severity == Severity.ERROR
        assert not issue.correctable
        assert rule.detect_calls == 0
        assert source.code == "def foo(\n"

    def test_syntax_issue_cannot_be_suppressed(self):
        source = Source("def foo( # autolint:disable Lint/Syntax\n")
        report = Runner([WordRule("Fix", "foo")]).run([source])

        assert report.issues[0].status is IssueStatus.REPORTED


class TestFailureIsolation:
    """Rule crashes become diagnostics."""

    def test_crashing_rule_does_not_stop_others(self):
        word = WordRule("Fix", "foo")
        sources = [Source("foo\n", path="a.rb"), Source("foo foo\n", path="b.rb")]
        report = Runner([CrashingRule(), word]).run(sources)

        assert [len(r.issues) for r in report.sources] == [1, 2]
        assert len(report.diagnostics) == 2
        diagnostic = report.diagnostics[0]
        assert diagnostic.rule == "Test/Crashing"
        assert diagnostic.phase == "detect"
        assert diagnostic.error_type == "RuntimeError"
        assert diagnostic.path == "a.rb"
        assert report.stats["crashes"] == 2

    def test_crashing_rule_with_parallel_rules(self):
        report = Runner([CrashingRule(), WordRule("Fix", "foo")], rule_jobs=4).run([Source("foo\n")])

        assert len(report.issues) == 1
        assert len(report.diagnostics) == 1


class TestConvergence:
    """Iteration budget."""

    def test_non_converging_source(self):
        source = Source("a\n")
        report = Runner([GrowingRule()], max_iterations=3).run([source], autocorrect=True)

        source_report = report.sources[0]
        assert not source_report.converged
        assert source_report.iterations == 3
        assert source_report.passes == 4
        assert source.code == "aaaa\n"
        assert statuses(source_report.issues) == {
            "Test/Growing": ["corrected", "corrected", "corrected", "unresolved"],
        }
        assert report.stats["unconverged"] == 1
        assert not report.success()

    def test_conflict_detected_again_is_listed_once(self):
        rules = [WordRule("First", "hello", "hallo"), WordRule("Second", "llo", "LLO")]
        source = Source("hello world\n")
        report = Runner(rules, max_iterations=1).run([source], autocorrect=True)

        assert source.code == "hallo world\n"
        assert statuses(report.issues) == {
            "Test/First": ["corrected"],
            "Test/Second": ["unresolved"],
        }

    def test_conflict_fixed_in_later_iteration(self):
        rules = [WordRule("First", "hello", "hallo"), WordRule("Second", "llo", "LLO")]
        source = Source("hello world\n")
        report = Runner(rules).run([source], autocorrect=True)

        assert source.code == "haLLO world\n"
        assert statuses(report.issues) == {
            "Test/First": ["corrected"],
            "Test/Second": ["corrected"],
        }


class TestParallelism:
    """Sources and rules in thread pools."""

    def test_source_order_is_kept(self):
        sources = [Source("foo\n" * (n + 1), path=f"{n}.rb") for n in range(6)]
        report = Runner([WordRule("Fix", "foo")], jobs=4).run(sources)

        assert [r.path for r in report.sources] == [f"{n}.rb" for n in range(6)]
        assert [len(r.issues) for r in report.sources] == [1, 2, 3, 4, 5, 6]

    def test_parallel_rules_give_same_order(self):
        code = "foo bar baz foo bar\n"
        rules = [WordRule("A", "bar"), WordRule("B", "foo"), WordRule("C", "baz")]

        sequential = Runner(rules).run([Source(code)])
        parallel = Runner(rules, rule_jobs=3).run([Source(code)])

        assert [(i.rule, i.start_byte) for i in sequential.issues] == \
            [(i.rule, i.start_byte) for i in parallel.issues]


class TestCancellation:
    """Cancel and timeout."""

    def test_cancel_keeps_completed_sources(self):
        runner = None

        def cancel_on_b(source):
            if source.path == "b.rb":
                runner.cancel()

        runner = Runner([CallbackRule(cancel_on_b), WordRule("Fix", "foo", "bar")])
        sources = [Source("foo\n", path=p) for p in ("a.rb", "b.rb", "c.rb")]
        report = runner.run(sources, autocorrect=True)

        a, b, c = report.sources
        assert report.cancelled
        assert not a.aborted and a.source.code == "bar\n"
        # b was interrupted before its correction: text untouched
        assert b.aborted and b.source.code == "foo\n"
        assert c.aborted and c.passes == 0
        assert report.stats["aborted"] == 2

    def test_timeout_cancels_run(self):
        sources = [Source("foo\n", path=f"{n}.rb") for n in range(3)]
        report = Runner([SlowRule(0.3)]).run(sources, timeout=0.05)

        assert report.cancelled
        assert report.sources[-1].aborted

    def test_runner_is_reusable_after_cancel(self):
        runner = Runner([WordRule("Fix", "foo")])
        runner.cancel()
        report = runner.run([Source("foo\n")])

        assert not report.cancelled
        assert len(report.issues) == 1

    def test_cancel_while_reparsing_drops_replaced_issues(self):
        runner = None
        adapter = CallbackAdapter(lambda: runner.cancel(), at=2)
        runner = Runner([WordRule("Fix", "foo", "bar"), WordRule("Rep", "baz")], adapter=adapter)
        source = Source("foo baz\n", adapter=adapter)
        report = runner.run([source], autocorrect=True)

        source_report = report.sources[0]
        assert source_report.aborted
        assert source.code == "bar baz\n"
        assert statuses(source_report.issues) == {"Test/Fix": ["corrected"]}

    def test_cancel_while_correcting_drops_replaced_issues(self):
        runner = None
        fix = CallbackFixRule("foo", "xxxxxxxx", lambda source: runner.cancel())
        runner = Runner([fix, WordRule("Rep", "baz")])
        source = Source("foo baz\n")
        report = runner.run([source], autocorrect=True)

        source_report = report.sources[0]
        assert source_report.aborted
        assert source.code == "xxxxxxxx baz\n"
        assert statuses(source_report.issues) == {"Test/CallbackFix": ["corrected"]}
