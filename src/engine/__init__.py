"""
Autolint tree-sitter engine package.

This package provides a rule evaluation and autocorrection engine for
Ruby-family source built on tree-sitter.
"""

__version__ = "0.1.0"

from .types import (
    Severity, IssueStatus, Location, Edit, Issue, ParseFailure, RuleDiagnostic,
    RuleMeta, Rule, LanguageAdapter, NodeRange
)

from .errors import EngineError, ConfigError, NoRulesError, InvalidEditError

from .source import Source
from .rule import RuleBase, RuleConfig
from .corrector import Corrector, CorrectionResult, apply_edits
from .runner import Runner, RunReport, SourceReport

from .registry import Registry, build_registry

from .config import Config, load_config, find_config_file

from .formatter import (
    Formatter, TextFormatter, ProgressFormatter, JSONFormatter, FlycheckFormatter,
    DisabledFormatter, TODOFormatter, SilentFormatter,
    AVAILABLE_FORMATTERS, create_formatter
)

__all__ = [
    # Types
    "Severity", "IssueStatus", "Location", "Edit", "Issue", "ParseFailure",
    "RuleDiagnostic", "RuleMeta", "Rule", "LanguageAdapter", "NodeRange",

    # Errors
    "EngineError", "ConfigError", "NoRulesError", "InvalidEditError",

    # Core
    "Source", "RuleBase", "RuleConfig", "Corrector", "CorrectionResult", "apply_edits",
    "Runner", "RunReport", "SourceReport",

    # Registry
    "Registry", "build_registry",

    # Config
    "Config", "load_config", "find_config_file",

    # Output
    "Formatter", "TextFormatter", "ProgressFormatter", "JSONFormatter", "FlycheckFormatter",
    "DisabledFormatter", "TODOFormatter", "SilentFormatter",
    "AVAILABLE_FORMATTERS", "create_formatter",
]
