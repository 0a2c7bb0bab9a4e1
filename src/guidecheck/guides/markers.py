"""Writes and removes VALIDATION_FAILED markers in guide sources."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

from guidecheck.core.constants import (
    DEFAULT_CONTRIBUTING_GUIDE,
    MARKER_COMMENT_RE,
    MARKER_COMMENT_TEMPLATE,
    MARKER_WARNING_RE,
    MARKER_WARNING_TEMPLATE,
    ValidationStatus,
)
from guidecheck.core.exceptions import MarkerError
from guidecheck.guides.parser import FENCE_OPEN_RE, is_marker_line
from guidecheck.models.result import ValidationResult

logger = logging.getLogger(__name__)

MAX_MARKER_ERROR_LENGTH = 300


def line_ending(text: str) -> str:
    """Line ending used by a guide; CRLF when its first line ends with one."""
    first = text.find("\n")
    return "\r\n" if first > 0 and text[first - 1] == "\r" else "\n"


def read_guide(path: Path) -> str:
    """Read guide text with its line endings untouched."""
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise MarkerError(f"Failed to read guide: {e}", path=path) from e


def write_guide(path: Path, text: str) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise MarkerError(f"Failed to write guide: {e}", path=path) from e


@dataclass
class MarkReport:
    """What a marking pass changed."""

    marked: int = 0
    cleared: int = 0
    files: list[str] = field(default_factory=list)


def strip_markers(text: str) -> str:
    """Remove every failure marker variant from guide text."""
    lines = text.splitlines(keepends=True)
    out: list[str] = []
    index = 0
    while index < len(lines):
        stripped = lines[index].strip()

        if MARKER_COMMENT_RE.match(stripped):
            index += 1
            continue

        if MARKER_WARNING_RE.match(stripped):
            index += 1
            # Older markers carried the error inside a trailing ``` pair
            if stripped.endswith("```"):
                while index < len(lines) and lines[index].strip() != "```":
                    index += 1
                index += 1
            if index < len(lines) and not lines[index].strip():
                index += 1
            continue

        out.append(lines[index])
        index += 1
    return "".join(out)


class FailureMarker:
    """Annotates failing code blocks in guides and cleans them up again."""

    def __init__(
        self,
        guides_root: Path,
        contributing_guide: str = DEFAULT_CONTRIBUTING_GUIDE,
    ) -> None:
        self._root = guides_root
        self._contributing = contributing_guide

    def mark(self, results: list[ValidationResult]) -> MarkReport:
        """
        Mark failing blocks and clear markers from blocks that now pass.

        Skipped results leave existing markers untouched.
        """
        by_file: dict[str, dict[int, ValidationResult]] = defaultdict(dict)
        for result in results:
            block = result.code_block
            if block is None or result.status == ValidationStatus.SKIPPED:
                continue
            by_file[block.file][block.fence_line - 1] = result

        report = MarkReport()
        for file, actions in sorted(by_file.items()):
            path = self._root / file
            original = read_guide(path)
            updated, marked, cleared = self.mark_text(original, file, actions)
            report.marked += marked
            report.cleared += cleared

            if updated != original:
                write_guide(path, updated)
                report.files.append(file)
                logger.info("Updated markers in %s (%d marked, %d cleared)", file, marked, cleared)

        return report

    def mark_text(
        self,
        text: str,
        file: str,
        actions: dict[int, ValidationResult],
    ) -> tuple[str, int, int]:
        """
        Rewrite markers in one guide's text.

        `actions` maps 0-based fence line indexes to results. Returns the new
        text and the number of blocks marked and cleared.
        """
        lines = text.splitlines(keepends=True)
        eol = line_ending(text)
        for fence_index in actions:
            if fence_index >= len(lines) or not FENCE_OPEN_RE.match(lines[fence_index]):
                raise MarkerError(
                    "Guide changed since validation; no code fence at expected line",
                    path=self._root / file,
                    details={"line": fence_index + 1},
                )

        out: list[str] = []
        marked = cleared = 0
        for index, line in enumerate(lines):
            result = actions.get(index)
            if result is not None:
                had_marker = self._pop_marker(out)
                if result.failed:
                    # comment, warning and blank line precede the fence
                    content_line = len(out) + 3 + 2
                    out.append(
                        MARKER_COMMENT_TEMPLATE.format(location=f"{file}:{content_line}") + eol
                    )
                    out.append(self._warning_line(result) + eol)
                    out.append(eol)
                    marked += 1
                elif had_marker:
                    cleared += 1
            out.append(line)

        return "".join(out), marked, cleared

    def unmark(self, paths: list[Path]) -> list[Path]:
        """Remove all markers from the given guides; returns files changed."""
        changed: list[Path] = []
        for path in paths:
            original = read_guide(path)
            cleaned = strip_markers(original)
            if cleaned != original:
                write_guide(path, cleaned)
                changed.append(path)
                logger.info("Cleaned markers from %s", path)
        return changed

    def _warning_line(self, result: ValidationResult) -> str:
        error = result.one_line_error()
        if len(error) > MAX_MARKER_ERROR_LENGTH:
            error = error[:MAX_MARKER_ERROR_LENGTH] + "..."
        return MARKER_WARNING_TEMPLATE.format(contributing=self._contributing, error=error)

    def _pop_marker(self, out: list[str]) -> bool:
        """Drop a marker (and the blank lines after it) from the end of `out`."""
        index = len(out) - 1
        while index >= 0 and not out[index].strip():
            index -= 1
        end = index
        while index >= 0 and is_marker_line(out[index]):
            index -= 1
        if index == end:
            return False
        del out[index + 1 :]
        return True
