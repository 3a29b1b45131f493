"""
Core types for the autolint engine.

This module provides shared dataclasses and types used across the engine,
the language adapter, the corrector and the rules.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, Optional, Protocol, Tuple
from abc import ABC, abstractmethod

if TYPE_CHECKING:
    from .source import Source


NodeRange = Tuple[int, int]  # (start_byte, end_byte) 0-based, half-open


class Severity(str, Enum):
    """Configured importance of a rule's findings."""
    ERROR = "error"
    WARNING = "warning"
    CONVENTION = "convention"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Parse a severity name case-insensitively (``Error``, ``warning``...)."""
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            names = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown severity {value!r}. Use one of: {names}") from None

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def symbol(self) -> str:
        return self.value[0].upper()


_SEVERITY_RANK = {
    Severity.CONVENTION: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}

# Groups whose rules report warnings unless configured otherwise
GROUP_SEVERITY: Dict[str, Severity] = {
    "Lint": Severity.WARNING,
    "Metrics": Severity.WARNING,
    "Performance": Severity.WARNING,
}


def default_severity_for(group: str) -> Severity:
    """Default severity inherited from a rule group."""
    return GROUP_SEVERITY.get(group, Severity.CONVENTION)


class IssueStatus(str, Enum):
    """Lifecycle state of an issue."""
    REPORTED = "reported"
    CORRECTED = "corrected"
    UNRESOLVED_CONFLICT = "unresolved_conflict"
    # Correctable issue still open when the source did not converge
    UNRESOLVED = "unresolved"
    # Suppressed by an inline comment
    DISABLED = "disabled"

    @property
    def is_open(self) -> bool:
        return self in (IssueStatus.REPORTED, IssueStatus.UNRESOLVED_CONFLICT, IssueStatus.UNRESOLVED)


@dataclass(frozen=True, order=True)
class Location:
    """A position in source text: 1-based line and character column."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Edit:
    """A proposed text replacement over a half-open byte range."""
    start_byte: int
    end_byte: int
    replacement: str

    def __post_init__(self):
        if self.start_byte < 0 or self.end_byte < self.start_byte:
            raise ValueError(f"Invalid edit range [{self.start_byte}, {self.end_byte})")


@dataclass(eq=False)
class Issue:
    """A single diagnostic finding.

    ``start_byte``/``end_byte`` refer to the text version the issue was
    produced against. ``status`` is the only field changed after creation.
    """
    rule: str
    group: str
    message: str
    severity: Severity
    location: Location
    start_byte: int
    end_byte: int
    end_location: Optional[Location] = None
    correctable: bool = False
    status: IssueStatus = IssueStatus.REPORTED
    meta: Optional[Dict[str, Any]] = None

    @property
    def corrected(self) -> bool:
        return self.status is IssueStatus.CORRECTED

    @property
    def disabled(self) -> bool:
        return self.status is IssueStatus.DISABLED

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    def __repr__(self) -> str:
        return (f"Issue({self.rule} {self.location} {self.status.value} "
                f"{self.message!r})")


@dataclass(frozen=True)
class ParseFailure:
    """Structured parse failure returned by a language adapter."""
    message: str
    start_byte: int
    end_byte: int


@dataclass(frozen=True)
class RuleDiagnostic:
    """A rule crashed while detecting or correcting; not an ordinary issue."""
    rule: str
    path: Optional[str]
    phase: str  # "detect" | "correct" | "parse"
    message: str
    error_type: str = "Exception"

    def __str__(self) -> str:
        return f"{self.path or '<source>'}: {self.rule} crashed during {self.phase}: {self.error_type}: {self.message}"


@dataclass(frozen=True)
class RuleMeta:
    """Metadata about a rule.

    Attributes:
        name: Rule name within its group (e.g., "EmptyExpression")
        group: Rule group used for bulk updates and default severity
        description: Human-readable description
        default_severity: Severity when the config does not set one;
            derived from the group when omitted
        correctable: Whether the rule implements ``correct``
    """
    name: str
    group: str
    description: str = ""
    default_severity: Optional[Severity] = None
    correctable: bool = False

    def __post_init__(self):
        if self.default_severity is None:
            object.__setattr__(self, "default_severity", default_severity_for(self.group))

    @property
    def full_name(self) -> str:
        return f"{self.group}/{self.name}"


class Rule(Protocol):
    """Protocol for all rules in the engine.

    Rules are stateless with respect to the text they analyze; the only
    state they hold is their read-only configuration.
    """
    meta: RuleMeta
    config: Any

    @property
    def enabled(self) -> bool: ...

    @property
    def severity(self) -> Severity: ...

    def excludes(self, source: "Source") -> bool: ...

    def detect(self, source: "Source") -> Iterable[Issue]:
        """Scan a source and return issues; must not mutate the source."""
        ...

    def correct(self, source: "Source", issue: Issue) -> Optional[Edit]:
        """Return an edit fixing ``issue`` in the current text, or None to decline."""
        ...


class LanguageAdapter(ABC):
    """Abstract base class for language adapters."""

    @property
    @abstractmethod
    def language_id(self) -> str:
        """Return the language identifier (e.g., 'ruby')."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> Tuple[str, ...]:
        """Return supported file extensions (e.g., ('.rb',))."""
        pass

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse text and return a Tree-sitter tree."""
        pass

    @abstractmethod
    def syntax_error(self, tree: Any) -> Optional[ParseFailure]:
        """Return the first parse failure in ``tree``, or None when it parsed cleanly."""
        pass

    @abstractmethod
    def iter_nodes(self, node: Any) -> Iterator[Any]:
        """Walk ``node`` and its descendants in document order."""
        pass

    @abstractmethod
    def is_comment(self, node: Any) -> bool:
        """Whether ``node`` is a comment."""
        pass
