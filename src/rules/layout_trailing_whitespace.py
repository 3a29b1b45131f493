"""
Layout Rule: Trailing Whitespace Detection

Detects spaces and tabs at the end of lines.
"""

import re
from typing import Iterator, Optional

from engine.rule import RuleBase
from engine.source import Source
from engine.types import Edit, Issue, RuleMeta

TRAILING = re.compile(rb'[ \t]+(?=\r?$)', re.MULTILINE)


class TrailingWhitespaceRule(RuleBase):
    """Rule to detect trailing whitespace."""

    meta = RuleMeta(
        name="TrailingWhitespace",
        group="Layout",
        description="Disallows trailing whitespace",
        correctable=True,
    )

    MESSAGE = "Trailing whitespace detected"

    def detect(self, source: Source) -> Iterator[Issue]:
        for match in TRAILING.finditer(source.code_bytes):
            yield self.issue_for_range(source, match.start(), match.end(), self.MESSAGE)

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        return Edit(issue.start_byte, issue.end_byte, "")
