"""
Shared rule plumbing: typed per-rule configuration and issue helpers.

Every rule declares a pydantic config model. The common fields
(``Enabled``, ``Severity``, ``Excluded``) live on `RuleConfig`; rules add
their own options by subclassing it. Unknown keys are rejected when the
config is validated, and models are frozen so a rule's configuration cannot
change once a run has started.
"""

from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .source import Source
from .types import Edit, Issue, RuleMeta, Severity


class RuleConfig(BaseModel):
    """Options every rule understands."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    enabled: bool = Field(default=True, alias="Enabled")
    severity: Optional[Severity] = Field(default=None, alias="Severity")
    excluded: Optional[List[str]] = Field(default=None, alias="Excluded")

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> Optional[Severity]:
        if value is None:
            return None
        return Severity.parse(value)

    @field_validator("excluded", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class RuleBase:
    """Helpers shared by concrete rules.

    Subclasses set ``meta``, optionally ``config_model``, and implement
    ``detect`` (and ``correct`` when ``meta.correctable``).
    """

    meta: ClassVar[RuleMeta]
    config_model: ClassVar[Type[RuleConfig]] = RuleConfig

    def __init__(self, config: Union[RuleConfig, Mapping[str, Any], None] = None):
        if config is None:
            config = self.config_model()
        elif not isinstance(config, RuleConfig):
            config = self.config_model.model_validate(dict(config))
        self.config = config

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.full_name})"

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def group(self) -> str:
        return self.meta.group

    @property
    def full_name(self) -> str:
        return self.meta.full_name

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def severity(self) -> Severity:
        return self.config.severity or self.meta.default_severity

    @property
    def excluded(self) -> List[str]:
        return list(self.config.excluded or [])

    def update(self, **options: Any) -> None:
        """Replace the configuration with validated updated values."""
        values: Dict[str, Any] = self.config.model_dump()
        values.update(options)
        self.config = self.config_model.model_validate(values)

    def excludes(self, source: Source) -> bool:
        """Whether this rule's ``Excluded`` patterns match the source path."""
        return source.matches_path(self.config.excluded)

    def detect(self, source: Source):
        raise NotImplementedError

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        return None

    # --- issue construction ---------------------------------------------

    def issue_for_range(self, source: Source, start_byte: int, end_byte: int,
                        message: Optional[str] = None, correctable: Optional[bool] = None,
                        meta: Optional[Dict[str, Any]] = None) -> Issue:
        """Build an issue over a half-open byte range of the current text."""
        end_location = None
        if end_byte > start_byte:
            end_location = source.location_at(end_byte - 1)

        return Issue(
            rule=self.full_name,
            group=self.group,
            message=message or self.meta.description,
            severity=self.severity,
            location=source.location_at(start_byte),
            end_location=end_location,
            start_byte=start_byte,
            end_byte=end_byte,
            correctable=self.meta.correctable if correctable is None else correctable,
            meta=meta,
        )

    def issue_for_node(self, source: Source, node: Any, message: Optional[str] = None,
                       correctable: Optional[bool] = None,
                       meta: Optional[Dict[str, Any]] = None) -> Issue:
        """Build an issue covering a syntax node."""
        return self.issue_for_range(source, node.start_byte, node.end_byte,
                                    message=message, correctable=correctable, meta=meta)
