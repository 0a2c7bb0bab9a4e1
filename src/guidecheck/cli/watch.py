"""CLI command that re-validates guides as they change."""

import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from guidecheck.cli.utils import load_config, print_result_line
from guidecheck.core.config import GuidecheckConfig
from guidecheck.core.constants import DEFAULT_DEBOUNCE_MS
from guidecheck.core.exceptions import GuidecheckError
from guidecheck.guides.catalog import GuideCatalog
from guidecheck.guides.watcher import ChangeEvent, ChangeType, GuideWatcher
from guidecheck.models.result import ValidationResult
from guidecheck.validation.validator import CodeValidator

console = Console()
err_console = Console(stderr=True)


def revalidate(
    config: GuidecheckConfig, base_path: Path, event: ChangeEvent
) -> list[ValidationResult]:
    """Validate the code blocks of the guide named by a change event."""
    guides_root = base_path / config.guides.root
    if event.type == ChangeType.DELETED:
        console.print(f"[yellow]Removed {escape(str(event.path))}[/yellow]")
        return []

    catalog = GuideCatalog(
        guides_root, pattern=config.guides.pattern, exclude=config.guides.exclude
    )
    if not catalog.matches(event.path):
        return []

    relative = event.path.resolve().relative_to(guides_root.resolve()).as_posix()

    validator = CodeValidator(config, base_path=base_path)
    blocks = validator.extract_code_blocks(relative)
    results = validator.validate_code_blocks(blocks)

    summary = validator.summary()
    console.print(
        f"[bold]{escape(relative)}[/bold]: {summary.passed} passed, "
        f"{summary.failed} failed, {summary.skipped} skipped"
    )
    for result in results:
        if result.failed:
            print_result_line(console, result)
    return results


def watch_command(
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Guides root directory")
    ] = None,
    debounce_ms: Annotated[
        int, typer.Option("--debounce", help="Debounce delay in milliseconds")
    ] = DEFAULT_DEBOUNCE_MS,
) -> None:
    """Watch guides and re-validate each one when it changes."""
    base_path = Path.cwd()

    def on_change(event: ChangeEvent) -> None:
        try:
            revalidate(config, base_path, event)
        except GuidecheckError as e:
            err_console.print(f"[red]Error: {escape(str(e))}[/red]")

    try:
        config = load_config(base_path, root=root)
        watcher = GuideWatcher(
            base_path / config.guides.root,
            on_change,
            pattern=config.guides.pattern,
            debounce_ms=debounce_ms,
        )
        watcher.start()
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"Watching {base_path / config.guides.root} (Ctrl+C to stop)")
    try:
        while watcher.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping watcher")
    finally:
        watcher.stop()
