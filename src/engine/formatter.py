"""
Output formatters for the autolint engine.

A formatter receives the finished RunReport and renders it. Every issue
carries its status, so formatters can tell apart issues that were fixed,
flagged, left unfixed because of a conflicting edit, or left open because
the source did not converge.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

import yaml

from . import __version__
from .errors import ConfigError
from .runner import RunReport, SourceReport
from .suppressions import SYNTAX_RULE
from .types import Issue, IssueStatus, Location

STATUS_MARKERS = {
    IssueStatus.CORRECTED: "[Corrected]",
    IssueStatus.UNRESOLVED_CONFLICT: "[Conflict]",
    IssueStatus.UNRESOLVED: "[Unresolved]",
    IssueStatus.DISABLED: "[Disabled]",
}


class Formatter(ABC):
    """Abstract base class for report formatters."""

    @abstractmethod
    def format(self, report: RunReport) -> str:
        """Render the report; an empty string means there is nothing to print."""
        pass


class TextFormatter(Formatter):
    """One line per issue followed by crashes and a summary line."""

    def format(self, report: RunReport) -> str:
        lines: List[str] = []

        for source_report in report.sources:
            path = source_report.path or "<source>"
            for issue in source_report.issues:
                lines.append(self.format_issue(path, issue))
            if not source_report.converged and not source_report.aborted:
                lines.append(f"{path}: did not converge after {source_report.iterations} iterations")
            if source_report.aborted:
                lines.append(f"{path}: aborted")

        diagnostics = report.diagnostics
        if diagnostics:
            if lines:
                lines.append("")
            lines.append("Rule crashes:")
            lines.extend(f"  {diagnostic}" for diagnostic in diagnostics)

        if lines:
            lines.append("")
        lines.append(self.summary(report))
        return "\n".join(lines)

    def format_issue(self, path: str, issue: Issue) -> str:
        line = f"{path}:{issue.location} [{issue.severity.symbol}] {issue.rule}: {issue.message}"
        marker = STATUS_MARKERS.get(issue.status)
        if marker:
            line = f"{line} {marker}"
        return line

    def summary(self, report: RunReport) -> str:
        stats = report.stats
        files = stats["files"]
        failures = stats["open"]
        parts = [
            f"{files} {'file' if files == 1 else 'files'} inspected",
            f"{failures} {'failure' if failures == 1 else 'failures'}",
        ]
        if stats["corrected"]:
            parts.append(f"{stats['corrected']} corrected")
        if stats["conflicts"]:
            parts.append(f"{stats['conflicts']} conflicts")
        if stats["crashes"]:
            parts.append(f"{stats['crashes']} crashes")
        if stats["unconverged"]:
            parts.append(f"{stats['unconverged']} not converged")
        summary = ", ".join(parts)
        if report.cancelled:
            summary += " (cancelled)"
        return summary


def _location_json(location: Optional[Location]) -> Optional[Dict[str, int]]:
    if location is None:
        return None
    return {"line": location.line, "column": location.column}


class JSONFormatter(Formatter):
    """Whole report as a single JSON document."""

    def __init__(self, indent: Optional[int] = 2):
        self.indent = indent

    def format(self, report: RunReport) -> str:
        output = {
            "metadata": {
                "autolint_version": __version__,
                "elapsed_ms": round(report.elapsed_ms, 2),
                "cancelled": report.cancelled,
            },
            "sources": [self._source_json(s) for s in report.sources],
            "diagnostics": [
                {
                    "rule": d.rule,
                    "path": d.path,
                    "phase": d.phase,
                    "error_type": d.error_type,
                    "message": d.message,
                }
                for d in report.diagnostics
            ],
            "summary": report.stats,
        }
        return json.dumps(output, indent=self.indent)

    def _source_json(self, source_report: SourceReport) -> Dict[str, Any]:
        return {
            "path": source_report.path,
            "corrected": source_report.source.is_corrected,
            "converged": source_report.converged,
            "aborted": source_report.aborted,
            "passes": source_report.passes,
            "issues": [
                {
                    "rule": issue.rule,
                    "severity": issue.severity.value,
                    "status": issue.status.value,
                    "correctable": issue.correctable,
                    "message": issue.message,
                    "location": _location_json(issue.location),
                    "end_location": _location_json(issue.end_location),
                }
                for issue in source_report.issues
            ],
        }


class TODOFormatter(Formatter):
    """Writes a config file excluding every file that currently has issues.

    The generated file is a starting point: remove the records one by one
    as the reported problems are fixed.
    """

    def __init__(self, config_path: str = ".autolint.yml"):
        self.config_path = config_path

    def format(self, report: RunReport) -> str:
        by_rule = self._paths_by_rule(report)
        if not by_rule:
            return ""

        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        lines = [
            "# This configuration file was generated by `autolint --gen-config`",
            f"# on {now} UTC using autolint {__version__}.",
            "# The point is for the user to remove these configuration records",
            "# one by one as the reported problems are removed from the code base.",
        ]
        for rule_name in sorted(by_rule):
            count, paths = by_rule[rule_name]
            lines.append("")
            lines.append(f"# Problems found: {count}")
            lines.append(f"# Run `autolint --only {rule_name}` for details")
            body = yaml.safe_dump({rule_name: {"Excluded": sorted(paths)}},
                                  default_flow_style=False, sort_keys=False)
            lines.append(body.rstrip("\n"))
        return "\n".join(lines) + "\n"

    def write(self, report: RunReport) -> Optional[str]:
        """Write the generated config; returns its path, or None when there was nothing to write."""
        content = self.format(report)
        if not content:
            return None

        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            f.write(content)
        return self.config_path

    def _paths_by_rule(self, report: RunReport) -> Dict[str, List[Any]]:
        found: Dict[str, List[Any]] = {}
        for source_report in report.sources:
            if not source_report.path:
                continue
            for issue in source_report.issues:
                # Syntax errors must be fixed, not excluded
                if issue.rule == SYNTAX_RULE or not issue.is_open:
                    continue
                entry = found.setdefault(issue.rule, [0, set()])
                entry[0] += 1
                entry[1].add(source_report.path)
        return found


class ProgressFormatter(TextFormatter):
    """A character per source (`.` clean, `F` with failures) above the text report."""

    def format(self, report: RunReport) -> str:
        progress = "".join("F" if s.open_issues else "." for s in report.sources)
        return f"{progress}\n\n{super().format(report)}"


class FlycheckFormatter(Formatter):
    """Open issues as `path:line:column: S: [Rule] message`, for editor integration."""

    def format(self, report: RunReport) -> str:
        return "\n".join(
            f"{s.path or '<source>'}:{issue.location}: {issue.severity.symbol}: [{issue.rule}] {issue.message}"
            for s in report.sources
            for issue in s.open_issues
        )


class DisabledFormatter(Formatter):
    """Lists issues silenced by inline directives."""

    def format(self, report: RunReport) -> str:
        lines = [
            f"{s.path or '<source>'}:{issue.location.line} {issue.rule}"
            for s in report.sources
            for issue in s.issues
            if issue.disabled
        ]
        if not lines:
            return ""
        return "\n".join(["Disabled with inline directives:"] + lines)


class SilentFormatter(Formatter):
    """Prints nothing; the exit code carries the result."""

    def format(self, report: RunReport) -> str:
        return ""


AVAILABLE_FORMATTERS: Dict[str, Type[Formatter]] = {
    "text": TextFormatter,
    "progress": ProgressFormatter,
    "json": JSONFormatter,
    "flycheck": FlycheckFormatter,
    "disabled": DisabledFormatter,
    "todo": TODOFormatter,
    "silent": SilentFormatter,
}


def create_formatter(name: str, **options: Any) -> Formatter:
    """Instantiate a formatter by name."""
    formatter_class = AVAILABLE_FORMATTERS.get(name)
    if formatter_class is None:
        raise ConfigError(f"Unknown formatter '{name}'. Use one of: {', '.join(AVAILABLE_FORMATTERS)}")
    return formatter_class(**options)
