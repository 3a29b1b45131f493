"""
Tests for the Corrector.
"""

import pytest

from conftest import CrashOnCorrectRule, WideEditRule, WordRule
from engine.corrector import Corrector, apply_edits, map_range
from engine.source import Source
from engine.types import Edit, IssueStatus


def detect(rules, source):
    issues = []
    for rule in rules:
        issues.extend(rule.detect(source))
    return issues


def by_name(rules):
    return {rule.full_name: rule for rule in rules}


class TestApplyEdits:

    def test_applies_right_to_left(self):
        data = b"foo bar baz"
        edits = [Edit(0, 3, "a"), Edit(8, 11, "longer")]
        assert apply_edits(data, edits) == b"a bar longer"

    def test_multibyte_replacement(self):
        assert apply_edits("é x".encode('utf-8'), [Edit(3, 4, "ü")]) == "é ü".encode('utf-8')

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            Edit(5, 2, "")


class TestMapRange:

    def test_shifts_ranges_after_edits(self):
        edits = [Edit(0, 3, "a"), Edit(8, 11, "longer")]
        assert map_range(4, 7, edits) == (2, 5)
        assert map_range(12, 13, edits) == (13, 14)

    def test_range_inside_replacement_snaps_to_it(self):
        edits = [Edit(4, 8, "xy")]
        assert map_range(5, 10, edits) == (4, 8)
        assert map_range(0, 6, edits) == (0, 6)


class TestCorrector:

    def setup_method(self):
        self.corrector = Corrector()

    def test_applies_all_non_overlapping_edits(self):
        rules = [WordRule("Fix", "foo", "quux")]
        source = Source("foo x foo\n")
        issues = detect(rules, source)

        result = self.corrector.apply(source, issues, by_name(rules))

        assert result.changed
        assert source.code == "quux x quux\n"
        assert result.edits == [Edit(0, 3, "quux"), Edit(6, 9, "quux")]
        assert all(i.status is IssueStatus.CORRECTED for i in issues)

    def test_first_of_overlapping_group_wins(self):
        rules = [WordRule("Long", "foo x", "y"), WordRule("Short", "x foo", "z")]
        source = Source("foo x foo\n")
        issues = detect(rules, source)

        result = self.corrector.apply(source, issues, by_name(rules))

        assert [i.rule for i in result.corrected] == ["Test/Long"]
        assert [i.rule for i in result.conflicts] == ["Test/Short"]
        assert source.code == "y foo\n"

    def test_touching_edits_conflict(self):
        rules = [WordRule("Left", "foo", "a"), WordRule("Right", "bar", "b")]
        source = Source("foobar\n")
        issues = detect(rules, source)

        result = self.corrector.apply(source, issues, by_name(rules))

        assert len(result.corrected) == 1
        assert result.conflicts[0].status is IssueStatus.UNRESOLVED_CONFLICT
        assert source.code == "abar\n"

    def test_same_start_prefers_discovery_order(self):
        rules = [WordRule("A", "foo", "a"), WordRule("B", "foo", "b")]
        source = Source("foo\n")
        issues = detect(rules, source)

        self.corrector.apply(source, issues, by_name(rules))
        assert source.code == "a\n"

    def test_declined_and_uncorrectable_issues_are_left_alone(self):
        rules = [WordRule("Report", "foo")]
        source = Source("foo\n")
        issues = detect(rules, source)

        result = self.corrector.apply(source, issues, by_name(rules))

        assert not result.changed
        assert not source.is_corrected
        assert issues[0].status is IssueStatus.REPORTED

    def test_crash_in_correct_is_a_diagnostic(self):
        rules = [CrashOnCorrectRule(), WordRule("Fix", "bar", "baz")]
        source = Source("foo bar\n", path="x.rb")
        issues = detect(rules, source)

        result = self.corrector.apply(source, issues, by_name(rules))

        assert source.code == "foo baz\n"
        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.phase == "correct"
        assert diagnostic.error_type == "ValueError"
        assert diagnostic.path == "x.rb"
        assert issues[0].status is IssueStatus.REPORTED

    def test_edit_outside_issue_range_is_rejected(self):
        rules = [WideEditRule()]
        source = Source("x = foo\n")
        issues = detect(rules, source)

        result = self.corrector.apply(source, issues, by_name(rules))

        assert not result.changed
        assert source.code == "x = foo\n"
        assert result.diagnostics[0].error_type == "InvalidEditError"

    def test_new_text_drops_tree(self):
        rules = [WordRule("Fix", "foo", "bar")]
        source = Source("foo\n")
        old_tree = source.tree
        issues = detect(rules, source)

        self.corrector.apply(source, issues, by_name(rules))

        assert source.tree is not old_tree
        assert source.node_text(source.root).strip() == "bar"
