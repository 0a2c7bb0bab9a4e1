"""JSON validation reports."""

import json
import logging
import platform
from datetime import datetime
from pathlib import Path
from typing import Any

from guidecheck.models.result import ValidationSummary

logger = logging.getLogger(__name__)


def build_report(
    project: str,
    summary: ValidationSummary,
    directory: Path | None = None,
    ci_mode: bool = False,
    test_mode: bool = False,
) -> dict[str, Any]:
    """Build a JSON-serializable report of a validation run."""
    return {
        "project": project,
        "summary": summary.to_dict(),
        "results": {
            status: [r.to_dict() for r in results]
            for status, results in summary.by_status().items()
        },
        "timestamp": datetime.now().isoformat(),
        "environment": {
            "python_version": platform.python_version(),
            "directory": str(directory) if directory else None,
            "ci_mode": ci_mode,
            "test_mode": test_mode,
        },
    }


def write_report(report: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
    logger.info("Wrote validation report to %s", path)
    return path
