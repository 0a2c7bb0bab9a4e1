"""Tests for JSON validation reports."""

import json
from pathlib import Path

from guidecheck.core.constants import ValidationStatus
from guidecheck.models.result import ValidationResult, ValidationSummary
from guidecheck.validation.report import build_report, write_report


def _summary() -> ValidationSummary:
    return ValidationSummary(
        results=[
            ValidationResult(ValidationStatus.PASSED, "basic.py", "Executed successfully"),
            ValidationResult(ValidationStatus.FAILED, "broken.py", "Execution failed", error="boom"),
        ]
    )


class TestReport:
    """Tests for build_report and write_report."""

    def test_build_report(self, temp_dir: Path) -> None:
        report = build_report("core", _summary(), directory=temp_dir, test_mode=True)

        assert report["project"] == "core"
        assert report["summary"]["total"] == 2
        assert report["summary"]["success_rate"] == 50.0
        assert [r["file"] for r in report["results"]["failed"]] == ["broken.py"]
        assert report["results"]["skipped"] == []
        assert report["environment"]["test_mode"] is True
        assert report["environment"]["ci_mode"] is False
        assert report["environment"]["directory"] == str(temp_dir)
        assert "timestamp" in report

    def test_write_report(self, temp_dir: Path) -> None:
        path = temp_dir / "reports" / "example_validation_report.json"

        written = write_report(build_report("core", _summary()), path)

        assert written == path
        data = json.loads(path.read_text())
        assert data["results"]["failed"][0]["error"] == "boom"
