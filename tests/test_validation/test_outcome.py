"""Tests for execution outcome analysis."""

from guidecheck.core.constants import GENERIC_SKIP_REASON, ValidationStatus
from guidecheck.validation.outcome import (
    OutcomeAnalyzer,
    determine_skip_reason,
    extract_key_output,
    is_authentication_error,
    summarize_error,
)
from guidecheck.validation.runners import ExecutionOutcome


class TestHelpers:
    """Tests for output helpers."""

    def test_extract_key_output(self) -> None:
        output = "Loading config...\n\nline one\nBundler warning\nline two\nline three\nline four\n"
        assert extract_key_output(output) == "line one\nline two\nline three"

    def test_extract_key_output_empty(self) -> None:
        assert extract_key_output(None) == ""
        assert extract_key_output("") == ""

    def test_summarize_traceback(self) -> None:
        stderr = (
            "Traceback (most recent call last):\n"
            '  File "snippet.py", line 1, in <module>\n'
            "NameError: name 'agent' is not defined\n"
        )
        assert summarize_error(stderr) == "NameError: name 'agent' is not defined"

    def test_skip_reasons(self) -> None:
        assert determine_skip_reason("Missing required environment variable OPENAI_API_KEY") == (
            "Skipped: OPENAI_API_KEY not configured"
        )
        assert determine_skip_reason("TAVILY_API_KEY is not set") == (
            "Skipped: TAVILY_API_KEY not configured"
        )
        assert determine_skip_reason("AuthenticationError: bad key") == (
            "Skipped: Authentication failed (invalid or missing API key)"
        )
        assert determine_skip_reason("This tool requires additional setup") == (
            "Skipped: Additional setup required"
        )
        assert determine_skip_reason("something odd") == GENERIC_SKIP_REASON

    def test_is_authentication_error(self) -> None:
        assert is_authentication_error("HTTP 401 Unauthorized")
        assert is_authentication_error("Missing OpenAI API key")
        assert not is_authentication_error("undefined method `run'")


class TestOutcomeAnalyzer:
    """Tests for OutcomeAnalyzer.analyze."""

    def test_passed(self) -> None:
        result = OutcomeAnalyzer().analyze("a.md:3", ExecutionOutcome(0, stdout="done\n"))

        assert result.status == ValidationStatus.PASSED
        assert result.output == "done"

    def test_warning_without_success_pattern(self) -> None:
        analyzer = OutcomeAnalyzer(require_success_pattern=True)

        quiet = analyzer.analyze("ex.rb", ExecutionOutcome(0, stdout="nothing to see\n"))
        loud = analyzer.analyze("ex.rb", ExecutionOutcome(0, stdout="Created agent: helper\n"))

        assert quiet.status == ValidationStatus.WARNING
        assert quiet.message == "Executed without error but no clear success indicators"
        assert loud.status == ValidationStatus.PASSED

    def test_acceptable_failure_skipped(self) -> None:
        outcome = ExecutionOutcome(1, stderr="Error: OPENAI_API_KEY not set\nAPI key not set\n")

        result = OutcomeAnalyzer().analyze("ex.rb", outcome)

        assert result.status == ValidationStatus.SKIPPED
        assert result.message == "Skipped: OPENAI_API_KEY not configured"

    def test_auth_error_skipped_only_in_test_mode(self) -> None:
        outcome = ExecutionOutcome(1, stderr="HTTP 401 from provider\n")

        normal = OutcomeAnalyzer().analyze("ex.rb", outcome)
        test_mode = OutcomeAnalyzer(test_mode=True).analyze("ex.rb", outcome)

        assert normal.status == ValidationStatus.FAILED
        assert test_mode.status == ValidationStatus.SKIPPED

    def test_failed(self) -> None:
        outcome = ExecutionOutcome(1, stderr="boom\nat line 3\n")

        result = OutcomeAnalyzer().analyze("ex.rb", outcome)

        assert result.status == ValidationStatus.FAILED
        assert result.message == "Execution failed"
        assert result.error == "boom\nat line 3"

    def test_failed_without_output(self) -> None:
        result = OutcomeAnalyzer().analyze("ex.rb", ExecutionOutcome(3))
        assert result.error == "Exited with status 3"

    def test_timeout(self) -> None:
        result = OutcomeAnalyzer().analyze("ex.rb", ExecutionOutcome(-1, timed_out=True), timeout=10)

        assert result.status == ValidationStatus.FAILED
        assert result.message == "Execution timed out"
        assert result.error == "Timeout after 10 seconds"
