"""Turns raw execution output into a validation status."""

import re

from guidecheck.core.constants import (
    AUTH_ERROR_PATTERNS,
    DEFAULT_ACCEPTABLE_FAILURE_PATTERNS,
    DEFAULT_SUCCESS_PATTERNS,
    GENERIC_SKIP_REASON,
    KEY_OUTPUT_LINES,
    NOISE_OUTPUT_RE,
    SKIP_REASONS,
    ValidationStatus,
)
from guidecheck.models.result import ValidationResult
from guidecheck.validation.runners import ExecutionOutcome


def extract_key_output(output: str | None, limit: int = KEY_OUTPUT_LINES) -> str:
    """First few meaningful lines of output."""
    if not output:
        return ""
    lines = [
        line
        for line in output.splitlines()
        if line.strip() and not NOISE_OUTPUT_RE.search(line)
    ]
    return "\n".join(lines[:limit]).strip()


def summarize_error(output: str | None) -> str:
    """Error summary; Python tracebacks collapse to their final line."""
    if output and "Traceback (most recent call last):" in output:
        lines = [line for line in output.splitlines() if line.strip()]
        return lines[-1].strip()
    return extract_key_output(output)


def determine_skip_reason(output: str) -> str:
    """Explain why an acceptable failure was skipped."""
    for pattern, reason in SKIP_REASONS:
        if re.search(pattern, output):
            return reason
    return GENERIC_SKIP_REASON


def is_authentication_error(output: str) -> bool:
    return any(re.search(pattern, output) for pattern in AUTH_ERROR_PATTERNS)


class OutcomeAnalyzer:
    """Classifies a finished run as passed, warning, skipped, or failed."""

    def __init__(
        self,
        success_patterns: tuple[str, ...] = DEFAULT_SUCCESS_PATTERNS,
        acceptable_failure_patterns: tuple[str, ...] = DEFAULT_ACCEPTABLE_FAILURE_PATTERNS,
        test_mode: bool = False,
        require_success_pattern: bool = False,
    ) -> None:
        self._success = [re.compile(p) for p in success_patterns]
        self._acceptable = [re.compile(p) for p in acceptable_failure_patterns]
        self._test_mode = test_mode
        self._require_success = require_success_pattern

    def analyze(
        self, subject: str, outcome: ExecutionOutcome, timeout: int | None = None
    ) -> ValidationResult:
        """Build a ValidationResult for a run of `subject`."""
        combined = outcome.combined_output

        if outcome.timed_out:
            return ValidationResult(
                status=ValidationStatus.FAILED,
                subject=subject,
                message="Execution timed out",
                error=f"Timeout after {timeout} seconds" if timeout else "Timeout",
            )

        if outcome.returncode == 0:
            if not self._require_success or any(p.search(combined) for p in self._success):
                return ValidationResult(
                    status=ValidationStatus.PASSED,
                    subject=subject,
                    message="Executed successfully",
                    output=extract_key_output(outcome.stdout),
                )
            return ValidationResult(
                status=ValidationStatus.WARNING,
                subject=subject,
                message="Executed without error but no clear success indicators",
                output=extract_key_output(combined),
            )

        if any(p.search(combined) for p in self._acceptable):
            return ValidationResult(
                status=ValidationStatus.SKIPPED,
                subject=subject,
                message=determine_skip_reason(combined),
                error=extract_key_output(outcome.stderr),
            )

        if self._test_mode and is_authentication_error(combined):
            return ValidationResult(
                status=ValidationStatus.SKIPPED,
                subject=subject,
                message="Skipped in test mode due to missing API credentials (syntax verified)",
                error=extract_key_output(outcome.stderr),
            )

        return ValidationResult(
            status=ValidationStatus.FAILED,
            subject=subject,
            message="Execution failed",
            error=summarize_error(outcome.stderr)
            or summarize_error(outcome.stdout)
            or f"Exited with status {outcome.returncode}",
        )
