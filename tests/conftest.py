"""
Shared fixtures and test rules for the autolint test suite.

The rules here work on raw text so engine behavior can be tested without
depending on the shape of a particular syntax tree.
"""

import time
from typing import Any, Iterator, Mapping, Optional

import pytest

from engine.rule import RuleBase
from engine.ruby_adapter import RubyAdapter
from engine.source import Source
from engine.types import Edit, Issue, RuleMeta


class WordRule(RuleBase):
    """Reports every occurrence of ``word``; corrects it to ``replacement``."""

    def __init__(self, name: str, word: str, replacement: Optional[str] = None,
                 group: str = "Test", config: Optional[Mapping[str, Any]] = None):
        self.meta = RuleMeta(
            name=name,
            group=group,
            description=f"Found {word}",
            correctable=replacement is not None,
        )
        super().__init__(config)
        self.word = word
        self.replacement = replacement
        self.detect_calls = 0

    def detect(self, source: Source) -> Iterator[Issue]:
        self.detect_calls += 1
        data = source.code_bytes
        word = self.word.encode('utf-8')
        start = data.find(word)
        while start != -1:
            yield self.issue_for_range(source, start, start + len(word), f"Found {self.word}")
            start = data.find(word, start + len(word))

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        if self.replacement is None:
            return None
        return Edit(issue.start_byte, issue.end_byte, self.replacement)


class CallbackFixRule(WordRule):
    """Corrects like WordRule, calling ``callback(source)`` first."""

    def __init__(self, word: str, replacement: str, callback):
        super().__init__("CallbackFix", word, replacement)
        self.callback = callback

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        self.callback(source)
        return super().correct(source, issue)


class CrashingRule(RuleBase):
    """Always raises from detect."""

    meta = RuleMeta(name="Crashing", group="Test")

    def detect(self, source: Source):
        raise RuntimeError("boom")


class CrashOnCorrectRule(WordRule):
    """Reports like WordRule but raises from correct."""

    def __init__(self, word: str = "foo"):
        super().__init__("CrashOnCorrect", word, replacement="unused")

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        raise ValueError("cannot fix")


class WideEditRule(WordRule):
    """Proposes an edit wider than the issue it fixes."""

    def __init__(self, word: str = "foo"):
        super().__init__("WideEdit", word, replacement="x")

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        return Edit(0, len(source.code_bytes), "x")


class GrowingRule(RuleBase):
    """Never converges: every correction produces a new issue."""

    meta = RuleMeta(name="Growing", group="Test", correctable=True)

    def detect(self, source: Source):
        if source.code.startswith("a"):
            return [self.issue_for_range(source, 0, 1, "Starts with a")]
        return []

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        return Edit(0, 1, "aa")


class CallbackRule(RuleBase):
    """Calls ``callback(source)`` from detect and reports nothing."""

    meta = RuleMeta(name="Callback", group="Test")

    def __init__(self, callback):
        super().__init__()
        self.callback = callback

    def detect(self, source: Source):
        self.callback(source)
        return []


class SlowRule(RuleBase):
    """Sleeps in detect."""

    meta = RuleMeta(name="Slow", group="Test")

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    def detect(self, source: Source):
        time.sleep(self.delay)
        return []


class CallbackAdapter(RubyAdapter):
    """Ruby adapter that calls ``callback()`` on its ``at``-th parse."""

    def __init__(self, callback, at: int):
        super().__init__()
        self.callback = callback
        self.at = at
        self.parses = 0

    def parse(self, text) -> Any:
        self.parses += 1
        if self.parses == self.at:
            self.callback()
        return super().parse(text)


def statuses(issues):
    """Map of rule name -> list of status values, in issue order."""
    result = {}
    for issue in issues:
        result.setdefault(issue.rule, []).append(issue.status.value)
    return result


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point home and XDG config dirs at an empty directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    return home
