"""
Configuration management for the autolint engine.

Configuration lives in a YAML file (`.autolint.yml`):

    Globs:
      - "**/*.rb"
      - "!lib"
    Excluded:
      - spec/fixtures
    Formatter:
      Name: text
    MaxIterations: 200

    Style/RedundantParentheses:
      Enabled: true
      Severity: Warning
      ExcludeTernary: false
      Excluded:
        - app/legacy.rb

Top-level settings and every rule section are validated by pydantic
models; unknown keys and unknown rules are rejected when the file is
loaded.
"""

import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .file_filter import find_files_by_globs, path_matches
from .registry import Registry, build_registry
from .rule import RuleBase
from .runner import DEFAULT_MAX_ITERATIONS
from .source import Source
from .types import LanguageAdapter

logger = logging.getLogger(__name__)

CONFIG_NAME = ".autolint.yml"
DEFAULT_GLOBS = ["**/*.rb", "**/*.cr", "!lib"]
DEFAULT_FORMATTER = "text"


def _listify(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


class FormatterSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = Field(default=DEFAULT_FORMATTER, alias="Name")


class ConfigSettings(BaseModel):
    """Top-level (non-rule) settings."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    globs: List[str] = Field(default_factory=lambda: list(DEFAULT_GLOBS), alias="Globs")
    excluded: List[str] = Field(default_factory=list, alias="Excluded")
    formatter: FormatterSettings = Field(default_factory=FormatterSettings, alias="Formatter")
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, alias="MaxIterations", ge=0)

    @field_validator("globs", "excluded", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        return _listify(value)


def find_config_file(start_path: str = ".") -> Optional[str]:
    """
    Find the configuration file.

    Looks for `.autolint.yml` in ``start_path`` and each parent directory,
    then for `~/.autolint.yml` and `~/.config/autolint/config.yml`.

    Returns:
        Path to config file or None if not found
    """
    current_path = os.path.abspath(start_path)

    while True:
        config_path = os.path.join(current_path, CONFIG_NAME)
        if os.path.isfile(config_path):
            return config_path

        parent_path = os.path.dirname(current_path)
        if parent_path == current_path:
            # Reached the root directory
            break
        current_path = parent_path

    home = os.path.expanduser("~")
    xdg_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(home, ".config")
    for config_path in (os.path.join(home, CONFIG_NAME),
                        os.path.join(xdg_home, "autolint", "config.yml")):
        if os.path.isfile(config_path):
            return config_path

    return None


def load_config(config_path: Optional[str] = None, registry: Optional[Registry] = None,
                root: Optional[str] = None) -> "Config":
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to a YAML config file. If None, the file is looked
            up with `find_config_file` starting at ``root``.
        registry: Rule registry (default: every shipped rule)
        root: Directory globs are resolved against (default: cwd)

    Raises:
        ConfigError: the file is missing, is not valid YAML, or fails validation
    """
    root = root or os.getcwd()
    if config_path is None:
        config_path = find_config_file(root)
    elif not os.path.isfile(config_path):
        raise ConfigError(f"Config file does not exist: {config_path}")

    data: Dict[str, Any] = {}
    if config_path:
        logger.debug(f"Loading config from {config_path}")
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Config file is invalid: {e}") from e

    return Config(data, registry=registry, path=config_path, root=root)


class Config:
    """Resolved configuration: settings plus one configured instance per rule."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None, registry: Optional[Registry] = None,
                 path: Optional[str] = None, root: Optional[str] = None):
        if data is not None and not isinstance(data, Mapping):
            raise ConfigError("Config file is invalid: expected a mapping at the top level")

        self.registry = registry if registry is not None else build_registry()
        self.path = path
        self.root = root or os.getcwd()

        data = dict(data or {})
        sections = {key: data.pop(key) for key in list(data) if "/" in str(key)}

        try:
            self.settings = ConfigSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Config file is invalid: {e}") from e

        self.globs: List[str] = list(self.settings.globs)
        self.excluded: List[str] = list(self.settings.excluded)
        self.max_iterations: int = self.settings.max_iterations
        self.formatter_name: str = self.settings.formatter.name

        self.rules: List[RuleBase] = []
        for rule_class in self.registry.get_all_rules():
            full_name = rule_class.meta.full_name
            section = sections.pop(full_name, None) or {}
            if not isinstance(section, Mapping):
                raise ConfigError(f"Config file is invalid: section {full_name} must be a mapping")
            try:
                self.rules.append(rule_class(section))
            except ValidationError as e:
                raise ConfigError(f"Config file is invalid: {full_name}: {e}") from e

        if sections:
            raise ConfigError(f"Config file is invalid: unknown rules {', '.join(sorted(sections))}")

    # --- rules ------------------------------------------------------------

    def rule(self, name: str) -> Optional[RuleBase]:
        """Configured rule instance by full or bare name."""
        rule_class = self.registry.get_rule(name)
        if rule_class is None:
            return None
        for rule in self.rules:
            if rule.full_name == rule_class.meta.full_name:
                return rule
        return None

    def enabled_rules(self) -> List[RuleBase]:
        """Enabled rules in registry order."""
        return [rule for rule in self.rules if rule.enabled]

    def update_rule(self, name: str, enabled: bool = True,
                    excluded: Optional[Iterable[str]] = None) -> None:
        """
        Enable or disable a rule and replace its exclusions; without
        ``excluded`` the rule runs on every source again.

        Raises:
            ConfigError: no rule has that name
        """
        rule = self.rule(name)
        if rule is None:
            raise ConfigError(f"Rule '{name}' does not exist")

        options: Dict[str, Any] = {
            "enabled": enabled,
            "excluded": list(excluded) if excluded is not None else None,
        }
        try:
            rule.update(**options)
        except ValidationError as e:
            raise ConfigError(f"Invalid options for {rule.full_name}: {e}") from e

    def update_rules(self, names: Iterable[str], enabled: bool = True,
                     excluded: Optional[Iterable[str]] = None) -> None:
        """Update rules by name; a group name updates every rule in the group."""
        excluded = list(excluded) if excluded is not None else None
        groups = self.registry.get_groups()
        for name in names:
            if name in groups:
                for rule in self.rules:
                    if rule.group == name:
                        self.update_rule(rule.full_name, enabled=enabled, excluded=excluded)
            else:
                self.update_rule(name, enabled=enabled, excluded=excluded)

    # --- sources ----------------------------------------------------------

    def sources(self, adapter: Optional[LanguageAdapter] = None) -> List[Source]:
        """Read every file selected by ``globs`` minus ``excluded``."""
        if adapter is None:
            from .ruby_adapter import default_ruby_adapter
            adapter = default_ruby_adapter

        files = find_files_by_globs(self.globs, self.root, extensions=adapter.file_extensions)
        sources = []
        for file_path in files:
            if path_matches(file_path, self.excluded, self.root):
                continue
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    code = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping {file_path}: {e}")
                continue
            sources.append(Source(code, path=os.path.relpath(file_path, self.root), adapter=adapter))
        return sources

    # --- output -----------------------------------------------------------

    @property
    def formatter(self):
        """Formatter instance for ``formatter_name``."""
        from .formatter import create_formatter
        return create_formatter(self.formatter_name)

    @formatter.setter
    def formatter(self, name: str) -> None:
        from .formatter import AVAILABLE_FORMATTERS
        if name not in AVAILABLE_FORMATTERS:
            raise ConfigError(f"Unknown formatter '{name}'. Use one of: {', '.join(AVAILABLE_FORMATTERS)}")
        self.formatter_name = name

    def to_dict(self) -> Dict[str, Any]:
        """Settings and rule sections in the on-disk (aliased) form."""
        data: Dict[str, Any] = {
            "Globs": list(self.globs),
            "Excluded": list(self.excluded),
            "Formatter": {"Name": self.formatter_name},
            "MaxIterations": self.max_iterations,
        }
        for rule in self.rules:
            data[rule.full_name] = rule.config.model_dump(by_alias=True, exclude_none=True, mode="json")
        return data
