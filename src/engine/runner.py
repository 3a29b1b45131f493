"""
Runner for the autolint engine.

Drives each source through detection passes and, when autocorrecting,
through a fixpoint loop:

    ANALYZING -> CORRECTING -> REPARSING -> ANALYZING ... -> DONE

The loop for one source is strictly sequential. Sources are independent
and may be processed in a thread pool; rules within a single pass may be
too, since they only read the (immutable for the pass) tree.
"""

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .corrector import Corrector, map_range
from .errors import NoRulesError
from .source import Source
from .suppressions import SYNTAX_RULE, apply_suppressions
from .types import Edit, Issue, IssueStatus, LanguageAdapter, Rule, RuleDiagnostic, Severity

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 200


class State(Enum):
    ANALYZING = "analyzing"
    CORRECTING = "correcting"
    REPARSING = "reparsing"
    DONE = "done"


@dataclass
class SourceReport:
    """Final state of one source after a run."""
    source: Source
    issues: List[Issue] = field(default_factory=list)
    diagnostics: List[RuleDiagnostic] = field(default_factory=list)
    passes: int = 0
    iterations: int = 0
    converged: bool = True
    aborted: bool = False

    @property
    def path(self) -> Optional[str]:
        return self.source.path

    @property
    def corrected(self) -> List[Issue]:
        return [i for i in self.issues if i.corrected]

    @property
    def open_issues(self) -> List[Issue]:
        return [i for i in self.issues if i.is_open]


@dataclass
class RunReport:
    """Per-source reports plus run-wide statistics."""
    sources: List[SourceReport] = field(default_factory=list)
    cancelled: bool = False
    elapsed_ms: float = 0.0

    @property
    def issues(self) -> List[Issue]:
        return [issue for report in self.sources for issue in report.issues]

    @property
    def diagnostics(self) -> List[RuleDiagnostic]:
        return [d for report in self.sources for d in report.diagnostics]

    @property
    def corrected_count(self) -> int:
        return sum(len(report.corrected) for report in self.sources)

    def success(self, fail_level: Severity = Severity.CONVENTION) -> bool:
        """True when no open issue is at or above ``fail_level``."""
        threshold = Severity.parse(fail_level).rank
        return not any(
            issue.is_open and issue.severity.rank >= threshold
            for issue in self.issues
        )

    @property
    def stats(self) -> Dict[str, Any]:
        issues = self.issues
        return {
            "files": len(self.sources),
            "issues": len(issues),
            "open": sum(len(r.open_issues) for r in self.sources),
            "passes": sum(r.passes for r in self.sources),
            "iterations": sum(r.iterations for r in self.sources),
            "corrected": sum(1 for i in issues if i.corrected),
            "conflicts": sum(1 for i in issues if i.status is IssueStatus.UNRESOLVED_CONFLICT),
            "disabled": sum(1 for i in issues if i.disabled),
            "crashes": len(self.diagnostics),
            "unconverged": sum(1 for r in self.sources if not r.converged),
            "aborted": sum(1 for r in self.sources if r.aborted),
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


class Runner:
    """Runs a fixed list of rules over sources.

    Args:
        rules: Rule instances in evaluation order; the syntax rule, if
            present, is pulled out and run ahead of the others
        adapter: Language adapter for sources created from plain text
        max_iterations: Maximum correction rounds per source
        jobs: Number of sources processed concurrently
        rule_jobs: Number of rules evaluated concurrently within a pass
    """

    def __init__(self, rules: Sequence[Rule], adapter: Optional[LanguageAdapter] = None,
                 max_iterations: int = DEFAULT_MAX_ITERATIONS, jobs: int = 1, rule_jobs: int = 1):
        rules = list(rules)
        if not rules:
            raise NoRulesError("No rules to run")

        self.syntax_rule = self._pop_syntax_rule(rules)
        self.rules: List[Rule] = rules
        self.adapter = adapter
        self.max_iterations = max_iterations
        self.jobs = max(1, jobs)
        self.rule_jobs = max(1, rule_jobs)
        self.corrector = Corrector()

        self._rules_by_name: Dict[str, Rule] = {r.meta.full_name: r for r in rules}
        self._rules_by_name[self.syntax_rule.meta.full_name] = self.syntax_rule
        self._cancel = threading.Event()

    @staticmethod
    def _pop_syntax_rule(rules: List[Rule]) -> Rule:
        for index, rule in enumerate(rules):
            if rule.meta.full_name == SYNTAX_RULE:
                return rules.pop(index)

        from rules.lint_syntax import SyntaxRule
        return SyntaxRule()

    # --- cancellation -----------------------------------------------------

    def cancel(self) -> None:
        """Abort the current run; sources stop at their next state change."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # --- entry point ------------------------------------------------------

    def run(self, sources: Iterable[Any], autocorrect: bool = False,
            timeout: Optional[float] = None) -> RunReport:
        """
        Run every rule over every source.

        Args:
            sources: Source objects (or plain strings, wrapped with this
                runner's adapter)
            autocorrect: Apply corrections until the text stops changing
            timeout: Seconds after which the run is cancelled

        Returns:
            RunReport with one SourceReport per source, in input order
        """
        sources = [self._as_source(s) for s in sources]
        self._cancel.clear()
        start_time = time.time()

        timer = None
        if timeout is not None:
            timer = threading.Timer(timeout, self.cancel)
            timer.daemon = True
            timer.start()

        try:
            if self.jobs <= 1 or len(sources) <= 1:
                reports = [self._process_safe(source, autocorrect) for source in sources]
            else:
                with concurrent.futures.ThreadPoolExecutor(max_workers=self.jobs) as executor:
                    reports = list(executor.map(lambda s: self._process_safe(s, autocorrect), sources))
        finally:
            if timer is not None:
                timer.cancel()

        report = RunReport(
            sources=reports,
            cancelled=self.cancelled,
            elapsed_ms=(time.time() - start_time) * 1000,
        )
        if report.cancelled:
            logger.warning(f"Run cancelled; {report.stats['aborted']} of {len(reports)} sources aborted")
        return report

    def _as_source(self, source: Any) -> Source:
        if isinstance(source, Source):
            return source
        return Source(str(source), adapter=self.adapter)

    # --- per-source state machine ------------------------------------------

    def _process_safe(self, source: Source, autocorrect: bool) -> SourceReport:
        try:
            return self._process(source, autocorrect)
        except Exception as e:
            # Only adapter failures get here; rule crashes are isolated per rule
            logger.error(f"Failed to process {source.path or '<source>'}: {e}")
            return SourceReport(
                source=source,
                diagnostics=[RuleDiagnostic(
                    rule=self.syntax_rule.meta.full_name,
                    path=source.path,
                    phase="parse",
                    message=str(e),
                    error_type=type(e).__name__,
                )],
                converged=False,
            )

    def _process(self, source: Source, autocorrect: bool) -> SourceReport:
        source.autocorrect = autocorrect
        report = SourceReport(source=source)
        label = source.path or '<source>'

        corrected: List[Issue] = []
        conflicts: List[Issue] = []
        last_edits: List[Edit] = []
        issues: List[Issue] = []
        # False once ``issues`` describe a text version that has been replaced
        current = True

        state = State.ANALYZING
        while state is not State.DONE:
            if self._cancel.is_set():
                report.aborted = True
                logger.debug(f"{label}: aborted in state {state.value}")
                break

            if state is State.ANALYZING:
                issues, diagnostics = self._analyze(source)
                current = True
                report.passes += 1
                report.diagnostics.extend(diagnostics)

                pending = [i for i in issues if i.correctable and i.status is IssueStatus.REPORTED]
                if not autocorrect or not pending:
                    state = State.DONE
                elif report.iterations >= self.max_iterations:
                    for issue in pending:
                        issue.status = IssueStatus.UNRESOLVED
                    report.converged = False
                    logger.warning(f"{label}: did not converge after {report.iterations} iterations")
                    state = State.DONE
                else:
                    state = State.CORRECTING

            elif state is State.CORRECTING:
                result = self.corrector.apply(source, issues, self._rules_by_name)
                report.diagnostics.extend(result.diagnostics)
                if not result.changed:
                    state = State.DONE
                else:
                    corrected.extend(result.corrected)
                    conflicts = result.conflicts
                    last_edits = result.edits
                    current = False
                    report.iterations += 1
                    state = State.REPARSING

            elif state is State.REPARSING:
                source.reparse()
                state = State.ANALYZING

        if current:
            # A conflict stays listed only while its finding was not detected again
            carried = [c for c in conflicts if not self._redetected(c, last_edits, issues)]
            final = corrected + carried + issues
        else:
            # Aborted after a rewrite: the last pass's open issues point into replaced text
            final = corrected + conflicts
        final.sort(key=lambda i: i.location)
        report.issues = final
        source.issues = final

        logger.debug(f"{label}: {report.passes} passes, {report.iterations} iterations, "
                     f"{len(final)} issues")
        return report

    @staticmethod
    def _redetected(conflict: Issue, edits: Sequence[Edit], issues: Sequence[Issue]) -> bool:
        """Whether ``issues`` hold the same rule's finding over the conflict's mapped range."""
        start, end = map_range(conflict.start_byte, conflict.end_byte, edits)
        return any(
            issue.rule == conflict.rule
            and (issue.start_byte == start or (issue.start_byte < end and start < issue.end_byte))
            for issue in issues
        )

    # --- one detection pass -------------------------------------------------

    def _analyze(self, source: Source) -> Tuple[List[Issue], List[RuleDiagnostic]]:
        """Run one detection pass; returns issues in position order and crash diagnostics."""
        if not source.valid_syntax:
            # A broken parse blocks every other rule
            return list(self.syntax_rule.detect(source)), []

        applicable = [
            (index, rule) for index, rule in enumerate(self.rules)
            if rule.enabled and not rule.excludes(source)
        ]

        if self.rule_jobs > 1 and len(applicable) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.rule_jobs) as executor:
                results = list(executor.map(lambda item: self._detect(item[1], source), applicable))
        else:
            results = [self._detect(rule, source) for _, rule in applicable]

        keyed: List[Tuple[Tuple[int, int, int], Issue]] = []
        diagnostics: List[RuleDiagnostic] = []
        for (rule_index, _), (found, diagnostic) in zip(applicable, results):
            if diagnostic is not None:
                diagnostics.append(diagnostic)
            for discovery, issue in enumerate(found):
                keyed.append(((issue.start_byte, rule_index, discovery), issue))

        keyed.sort(key=lambda k: k[0])
        issues = [issue for _, issue in keyed]
        apply_suppressions(issues, source.code)
        return issues, diagnostics

    def _detect(self, rule: Rule, source: Source) -> Tuple[List[Issue], Optional[RuleDiagnostic]]:
        try:
            return list(rule.detect(source) or []), None
        except Exception as e:
            logger.warning(f"Rule '{rule.meta.full_name}' failed on {source.path or '<source>'}: {e}")
            return [], RuleDiagnostic(
                rule=rule.meta.full_name,
                path=source.path,
                phase="detect",
                message=str(e),
                error_type=type(e).__name__,
            )
