"""Shared data structures for audit processing."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping

Severity = Literal["high", "medium", "low"]

SEVERITIES: tuple[Severity, ...] = ("high", "medium", "low")


@dataclass(frozen=True, slots=True)
class RepositoryReference:
    owner: str
    repo: str
    branch: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True, slots=True)
class SourceFileDescriptor:
    path: str
    raw_url: str


@dataclass(frozen=True, slots=True)
class SourceFileWithContent:
    path: str
    raw_url: str
    content: str = ""

    @property
    def line_count(self) -> int:
        """Newline-delimited segments; a file without content counts zero."""
        if not self.content:
            return 0
        return len(self.content.split("\n"))


@dataclass(frozen=True, slots=True)
class Vulnerability:
    line: int
    type: str
    message: str
    severity: Severity = "low"


@dataclass(frozen=True, slots=True)
class LineNote:
    line: int
    text: str


@dataclass(frozen=True, slots=True)
class AuditResult:
    vulnerabilities: tuple[Vulnerability, ...] = ()
    explanations: tuple[LineNote, ...] = ()
    suggested_fixes: tuple[LineNote, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON wire shape shared with vendors and API callers."""
        return {
            "vulnerabilities": [
                {
                    "line": item.line,
                    "type": item.type,
                    "message": item.message,
                    "severity": item.severity,
                }
                for item in self.vulnerabilities
            ],
            "explanations": [
                {"line": note.line, "explanation": note.text} for note in self.explanations
            ],
            "suggestedFixes": [
                {"line": note.line, "fix": note.text} for note in self.suggested_fixes
            ],
        }


@dataclass(frozen=True, slots=True)
class RepositoryAuditSnapshot:
    """Immutable view of a repository audit at one point in time.

    ``file_order`` lists every discovered file; paths skipped for empty
    content are absent from ``results``.
    """

    file_order: tuple[str, ...] = ()
    results: Mapping[str, AuditResult] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def capture(cls, file_order: List[str], results: Dict[str, AuditResult]) -> "RepositoryAuditSnapshot":
        return cls(file_order=tuple(file_order), results=MappingProxyType(dict(results)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_order": list(self.file_order),
            "results": {path: result.to_dict() for path, result in self.results.items()},
        }


FALLBACK_AUDIT_RESULT = AuditResult(
    vulnerabilities=(
        Vulnerability(
            line=7,
            type="Missing Input Validation",
            message=(
                "The set(uint x) function does not validate input. "
                "This can lead to unintended values being stored."
            ),
            severity="medium",
        ),
        Vulnerability(
            line=9,
            type="Visibility",
            message="The get() function is set as public, which may not be required if used internally.",
            severity="low",
        ),
    ),
    explanations=(
        LineNote(1, "Specifies that this contract uses Solidity version 0.8.0 or greater."),
        LineNote(3, "Declares a public unsigned integer variable named 'data'."),
        LineNote(6, "Defines a function to set the value of 'data' without input validation."),
        LineNote(9, "Defines a function to get the value of 'data'. The public visibility allows external calls."),
    ),
    suggested_fixes=(
        LineNote(7, "Add an input validation check, e.g., require(x > 0, 'Value must be positive');"),
    ),
)
