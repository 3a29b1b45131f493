"""
Exceptions raised by the autolint engine.

Only configuration problems abort a run. Syntax failures, rule crashes,
edit conflicts and convergence failures are recorded in the run report.
"""


class EngineError(Exception):
    """Base class for engine errors."""


class ConfigError(EngineError):
    """The configuration could not be loaded or applied."""


class NoRulesError(ConfigError):
    """A run was requested without any rule to run."""


class InvalidEditError(EngineError):
    """A rule proposed an edit outside the range of the issue it fixes."""
