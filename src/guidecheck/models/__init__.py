"""guidecheck data models."""

from guidecheck.models.guide import CodeBlock, Guide, Heading, Link
from guidecheck.models.result import (
    LinkIssue,
    LinkReport,
    ValidationResult,
    ValidationSummary,
)

__all__ = [
    # Guide models
    "Guide",
    "CodeBlock",
    "Heading",
    "Link",
    # Results
    "ValidationResult",
    "ValidationSummary",
    "LinkIssue",
    "LinkReport",
]
