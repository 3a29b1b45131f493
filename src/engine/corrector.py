"""
Corrector: applies a conflict-free subset of proposed edits to a source.

Edits are requested from the owning rules, ordered by position, filtered so
that no two accepted edits touch or overlap, and applied in one pass from
right to left so earlier replacements never shift the offsets of later ones.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InvalidEditError
from .source import Source
from .types import Edit, Issue, IssueStatus, Rule, RuleDiagnostic

logger = logging.getLogger(__name__)


@dataclass
class CorrectionResult:
    """Outcome of one correction pass over a source."""
    corrected: List[Issue] = field(default_factory=list)
    edits: List[Edit] = field(default_factory=list)
    conflicts: List[Issue] = field(default_factory=list)
    diagnostics: List[RuleDiagnostic] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.corrected)


def apply_edits(data: bytes, edits: Sequence[Edit]) -> bytes:
    """Apply non-overlapping edits to ``data``, last edit first."""
    result = data
    for edit in sorted(edits, key=lambda e: e.start_byte, reverse=True):
        result = result[:edit.start_byte] + edit.replacement.encode('utf-8') + result[edit.end_byte:]
    return result


def map_range(start_byte: int, end_byte: int, edits: Sequence[Edit]) -> Tuple[int, int]:
    """
    Map a byte range of the text before ``edits`` were applied onto the new text.

    An offset inside a replaced range snaps to that replacement: a start to
    its beginning, an end to its end.
    """
    return _map_offset(start_byte, edits, False), _map_offset(end_byte, edits, True)


def _map_offset(offset: int, edits: Sequence[Edit], is_end: bool) -> int:
    shift = 0
    for edit in sorted(edits, key=lambda e: e.start_byte):
        replacement_len = len(edit.replacement.encode('utf-8'))
        if edit.end_byte <= offset:
            shift += replacement_len - (edit.end_byte - edit.start_byte)
        elif edit.start_byte < offset:
            return edit.start_byte + shift + (replacement_len if is_end else 0)
        else:
            break
    return offset + shift


class Corrector:
    """Requests, orders, de-conflicts and applies edits for one pass."""

    def apply(self, source: Source, issues: Sequence[Issue],
              rules: Dict[str, Rule]) -> CorrectionResult:
        """
        Correct ``source`` using the correctable issues of one detection pass.

        Args:
            source: Source whose current text the issues were produced against
            issues: Issues of the pass, in discovery order
            rules: Rule instances by full name

        Returns:
            CorrectionResult; ``source.code`` is replaced only if an edit was accepted
        """
        result = CorrectionResult()
        proposals = self._collect(source, issues, rules, result)
        if not proposals:
            return result

        accepted: List[Tuple[Edit, Issue]] = []
        last_end: Optional[int] = None
        for edit, issue in proposals:
            if last_end is not None and edit.start_byte <= last_end:
                issue.status = IssueStatus.UNRESOLVED_CONFLICT
                result.conflicts.append(issue)
                continue
            accepted.append((edit, issue))
            last_end = edit.end_byte

        if not accepted:
            return result

        new_code = apply_edits(source.code_bytes, [edit for edit, _ in accepted])

        # Commit only once the whole new text is built
        source.code = new_code.decode('utf-8')
        for edit, issue in accepted:
            issue.status = IssueStatus.CORRECTED
            result.corrected.append(issue)
            result.edits.append(edit)

        logger.debug(f"{source.path or '<source>'}: applied {len(accepted)} edits, "
                     f"{len(result.conflicts)} conflicts")
        return result

    def _collect(self, source: Source, issues: Sequence[Issue], rules: Dict[str, Rule],
                 result: CorrectionResult) -> List[Tuple[Edit, Issue]]:
        """Ask rules for edits; returns (edit, issue) sorted by position then discovery."""
        proposals = []
        for index, issue in enumerate(issues):
            if not issue.correctable or issue.status is not IssueStatus.REPORTED:
                continue
            rule = rules.get(issue.rule)
            if rule is None:
                continue

            try:
                edit = rule.correct(source, issue)
                if edit is None:
                    continue
                self._check_bounds(edit, issue, source)
            except Exception as e:
                logger.warning(f"Rule '{issue.rule}' failed to correct {source.path or '<source>'}: {e}")
                result.diagnostics.append(RuleDiagnostic(
                    rule=issue.rule,
                    path=source.path,
                    phase="correct",
                    message=str(e),
                    error_type=type(e).__name__,
                ))
                continue

            proposals.append((edit.start_byte, index, edit, issue))

        proposals.sort(key=lambda p: (p[0], p[1]))
        return [(edit, issue) for _, _, edit, issue in proposals]

    def _check_bounds(self, edit: Edit, issue: Issue, source: Source) -> None:
        """An edit may only rewrite text inside the issue's own range."""
        if edit.start_byte < issue.start_byte or edit.end_byte > issue.end_byte:
            raise InvalidEditError(
                f"edit [{edit.start_byte}, {edit.end_byte}) is outside issue range "
                f"[{issue.start_byte}, {issue.end_byte})"
            )
        if edit.end_byte > len(source.code_bytes):
            raise InvalidEditError(f"edit ends past the end of the source ({edit.end_byte})")
