"""
Inline suppression comments.

This module parses suppression comments in source code to selectively
disable rule findings:

    x = 1 # autolint:disable Style/RedundantParentheses, Lint
    # autolint:disable-next-line Naming/AsciiIdentifiers

Entries are rule full names, bare rule names, or group names. Suppressed
issues are marked ``disabled``; syntax issues are never suppressed.
"""

import re
from typing import Dict, Iterable, List, Set, Tuple

from .types import Issue, IssueStatus

SYNTAX_RULE = "Lint/Syntax"

_DIRECTIVE = re.compile(
    r'#\s*autolint:(disable-next-line|disable)\s+([A-Za-z0-9_/]+(?:\s*,\s*[A-Za-z0-9_/]+)*)'
)


class SuppressionParser:
    """Parser for autolint suppression comments."""

    def __init__(self, text: str):
        self.text = text
        self.lines = text.split('\n')
        self.line_suppressions: Dict[int, Set[str]] = {}  # line_number -> {names}
        self._parse_suppressions()

    def _parse_suppressions(self):
        """Parse all suppression comments in the text."""
        for line_num, line in enumerate(self.lines, 1):
            for directive, names in self._extract_directives(line):
                target = line_num + 1 if directive == "disable-next-line" else line_num
                self.line_suppressions.setdefault(target, set()).update(names)

    def _extract_directives(self, line: str) -> List[Tuple[str, Set[str]]]:
        """Extract (directive, names) pairs from a line."""
        found = []
        for match in _DIRECTIVE.finditer(line):
            names = {name.strip() for name in match.group(2).split(',') if name.strip()}
            if names:
                found.append((match.group(1), names))
        return found

    def is_suppressed(self, issue: Issue) -> bool:
        """Check if an issue should be suppressed."""
        if issue.rule == SYNTAX_RULE:
            return False

        names = self.line_suppressions.get(issue.location.line)
        if not names:
            return False

        short_name = issue.rule.split('/', 1)[-1]
        return bool(names & {issue.rule, short_name, issue.group})


def apply_suppressions(issues: Iterable[Issue], text: str) -> int:
    """Mark suppressed issues as disabled; return how many were disabled."""
    issues = list(issues)
    if not issues or "autolint:disable" not in text:
        return 0

    parser = SuppressionParser(text)
    disabled = 0
    for issue in issues:
        if parser.is_suppressed(issue):
            issue.status = IssueStatus.DISABLED
            disabled += 1
    return disabled
