"""guidecheck custom exception hierarchy."""

from pathlib import Path
from typing import Any


class GuidecheckError(Exception):
    """Base exception for all guidecheck errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(GuidecheckError):
    """Raised when configuration is invalid or missing."""

    pass


class GuideFileError(GuidecheckError):
    """Base exception for guide file operations."""

    def __init__(
        self, message: str, path: Path | None = None, details: dict[str, Any] | None = None
    ) -> None:
        details = details or {}
        if path:
            details["path"] = str(path)
        super().__init__(message, details)
        self.path = path


class ParseError(GuideFileError):
    """Raised when a guide cannot be parsed."""

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        line: int | None = None,
        error_type: str = "parse",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if line is not None:
            details["line"] = line
        details["error_type"] = error_type
        super().__init__(message, path, details)
        self.line = line
        self.error_type = error_type


class MarkerError(GuideFileError):
    """Raised when failure markers cannot be written or removed."""

    pass


class ValidationError(GuidecheckError):
    """Base exception for code validation operations."""

    pass


class RunnerError(ValidationError):
    """Raised when a language runner cannot be used."""

    def __init__(
        self,
        message: str,
        language: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if language:
            details["language"] = language
        super().__init__(message, details)
        self.language = language


class RunnerNotAvailableError(RunnerError):
    """Raised when the interpreter for a language is not installed."""

    pass


class HarnessError(ValidationError):
    """Raised when the execution harness cannot be assembled."""

    pass


class EnvironmentCheckError(ValidationError):
    """Raised when the example environment is unusable."""

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if missing:
            details["missing"] = missing
        super().__init__(message, details)
        self.missing = missing or []


class LinkCheckError(GuidecheckError):
    """Raised when link checking cannot run."""

    pass


class StoreError(GuidecheckError):
    """Raised when result cache operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


class WatcherError(GuidecheckError):
    """Raised when the guide watcher encounters an error."""

    pass
