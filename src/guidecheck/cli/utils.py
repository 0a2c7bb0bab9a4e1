"""Helpers shared by CLI commands."""

import os
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from guidecheck.core.config import GuidecheckConfig
from guidecheck.core.constants import ValidationStatus
from guidecheck.models.result import ValidationResult, ValidationSummary

STATUS_STYLES = {
    ValidationStatus.PASSED: "green",
    ValidationStatus.WARNING: "magenta",
    ValidationStatus.SKIPPED: "yellow",
    ValidationStatus.FAILED: "red",
}


def load_config(
    base_path: Path | None = None,
    root: Path | None = None,
    test_mode: bool = False,
) -> GuidecheckConfig:
    """Load config from disk, apply environment overrides, then CLI flags."""
    config = GuidecheckConfig.load(base_path).with_env_overrides(os.environ)
    if root is not None:
        config = replace(config, guides=replace(config.guides, root=str(root)))
    if test_mode:
        config = replace(config, validation=replace(config.validation, test_mode=True))
    return config


def summary_table(summary: ValidationSummary, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Status", style="cyan")
    table.add_column("Count", justify="right")

    table.add_row("[green]passed[/green]", str(summary.passed))
    table.add_row("[magenta]warning[/magenta]", str(summary.warnings))
    table.add_row("[yellow]skipped[/yellow]", str(summary.skipped))
    table.add_row("[red]failed[/red]", str(summary.failed))
    table.add_row("total", str(summary.total))
    return table


def print_results(
    console: Console, results: list[ValidationResult], verbose: bool = False
) -> None:
    """Print failures, or every result when verbose."""
    shown = results if verbose else [r for r in results if r.failed]
    if not shown:
        return

    table = Table(title="Results" if verbose else "Failures")
    table.add_column("Location", style="blue")
    table.add_column("Status")
    table.add_column("Message")

    for result in shown:
        style = STATUS_STYLES[result.status]
        message = result.message
        if result.error:
            error = result.one_line_error()
            message = f"{message}: {error[:120]}{'...' if len(error) > 120 else ''}"
        table.add_row(
            escape(result.subject),
            f"[{style}]{result.status.value}[/{style}]",
            escape(message),
        )

    console.print(table)


def print_result_line(console: Console, result: ValidationResult) -> None:
    style = STATUS_STYLES[result.status]
    console.print(f"  [{style}]{result.status.value:>7}[/{style}]  {escape(result.subject)}  {escape(result.message)}")
