"""Validation and link-check result models."""

from dataclasses import dataclass, field
from typing import Any

from guidecheck.core.constants import ValidationStatus
from guidecheck.models.guide import CodeBlock, Link


@dataclass
class ValidationResult:
    """Result of validating one code block or example file."""

    status: ValidationStatus
    subject: str
    message: str
    error: str | None = None
    output: str | None = None
    code_block: CodeBlock | None = None
    duration_ms: float = 0.0
    cached: bool = False

    @property
    def success(self) -> bool:
        """Passed or passed with warnings."""
        return self.status in (ValidationStatus.PASSED, ValidationStatus.WARNING)

    @property
    def failed(self) -> bool:
        return self.status == ValidationStatus.FAILED

    def one_line_error(self) -> str:
        """Error text collapsed onto a single line."""
        text = self.error or self.message
        return " ".join(text.split())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "status": self.status.value,
            "file": self.subject,
            "message": self.message,
        }
        if self.error:
            data["error"] = self.error
        if self.output:
            data["output"] = self.output
        if self.code_block is not None:
            data["language"] = self.code_block.language
        if self.cached:
            data["cached"] = True
        data["duration_ms"] = round(self.duration_ms, 1)
        return data


@dataclass
class ValidationSummary:
    """Aggregate counts over a set of validation results."""

    results: list[ValidationResult] = field(default_factory=list)

    def count(self, status: ValidationStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return self.count(ValidationStatus.PASSED)

    @property
    def failed(self) -> int:
        return self.count(ValidationStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(ValidationStatus.SKIPPED)

    @property
    def warnings(self) -> int:
        return self.count(ValidationStatus.WARNING)

    @property
    def evaluated(self) -> int:
        """Results that were actually checked (not skipped)."""
        return self.total - self.skipped

    @property
    def success_rate(self) -> float:
        """Percentage of evaluated results that succeeded."""
        if self.evaluated == 0:
            return 0.0
        return round((self.passed + self.warnings) / self.evaluated * 100, 1)

    @property
    def failed_results(self) -> list[ValidationResult]:
        return [r for r in self.results if r.failed]

    def meets_threshold(self, min_rate: float) -> bool:
        """Check the success-rate gate; vacuously true with nothing evaluated."""
        if self.evaluated == 0:
            return True
        return self.success_rate >= min_rate

    def by_status(self) -> dict[str, list[ValidationResult]]:
        """Group results by status value."""
        grouped: dict[str, list[ValidationResult]] = {s.value: [] for s in ValidationStatus}
        for result in self.results:
            grouped[result.status.value].append(result)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "warnings": self.warnings,
            "success_rate": self.success_rate,
        }


@dataclass
class LinkIssue:
    """A broken link found by the link checker."""

    guide: str
    link: Link
    reason: str

    @property
    def location(self) -> str:
        return f"{self.guide}:{self.link.line_number}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "guide": self.guide,
            "line": self.link.line_number,
            "target": self.link.target,
            "kind": self.link.kind.value,
            "reason": self.reason,
        }


@dataclass
class LinkReport:
    """Outcome of a link integrity check."""

    checked: int = 0
    skipped: int = 0
    issues: list[LinkIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "checked": self.checked,
            "skipped": self.skipped,
            "broken": len(self.issues),
            "issues": [i.to_dict() for i in self.issues],
        }
