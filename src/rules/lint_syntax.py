"""
Lint Rule: Syntax

Reports source that does not parse. The runner runs this rule before every
other rule; when it reports, no other rule runs for that pass.
"""

from typing import List

from engine.rule import RuleBase
from engine.source import Source
from engine.types import Issue, RuleMeta, Severity


class SyntaxRule(RuleBase):
    """Rule reporting invalid syntax."""

    meta = RuleMeta(
        name="Syntax",
        group="Lint",
        description="Reports invalid syntax",
        default_severity=Severity.ERROR,
    )

    @property
    def enabled(self) -> bool:
        # A broken parse blocks every other rule, so this one cannot be turned off
        return True

    def excludes(self, source: Source) -> bool:
        return False

    def detect(self, source: Source) -> List[Issue]:
        failure = source.syntax_error
        if failure is None:
            return []

        return [self.issue_for_range(
            source,
            failure.start_byte,
            failure.end_byte,
            message=failure.message,
            correctable=False,
        )]
