"""CLI command for link integrity checks."""

import json
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from guidecheck.cli.utils import load_config
from guidecheck.core.exceptions import GuidecheckError
from guidecheck.guides.catalog import GuideCatalog
from guidecheck.guides.links import LinkChecker

console = Console()
err_console = Console(stderr=True)


def links_command(
    pattern: Annotated[
        Optional[str],
        typer.Option("--pattern", "-p", help="Glob of guides to check, relative to the guides root"),
    ] = None,
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Guides root directory")
    ] = None,
    external: Annotated[
        Optional[bool],
        typer.Option("--external/--no-external", help="Also request external URLs"),
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Check anchors, relative links and external URLs in guides."""
    base_path = Path.cwd()

    try:
        config = load_config(base_path, root=root)
        links_config = config.links
        if external is not None:
            links_config = replace(links_config, check_external=external)

        catalog = GuideCatalog(
            base_path / config.guides.root,
            pattern=pattern or config.guides.pattern,
            exclude=config.guides.exclude,
        )
        loaded = catalog.load()
        report = LinkChecker(catalog, links_config).check()
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if json_output:
        data = report.to_dict()
        data["errors"] = [str(e) for e in loaded.errors]
        typer.echo(json.dumps(data, indent=2))
    else:
        for error in loaded.errors:
            console.print(f"[yellow]Unreadable guide: {escape(str(error))}[/yellow]")

        if report.issues:
            table = Table(title="Broken Links")
            table.add_column("Location", style="blue")
            table.add_column("Target", style="cyan")
            table.add_column("Problem")
            for issue in report.issues:
                table.add_row(
                    issue.location,
                    escape(issue.link.target),
                    escape(issue.reason),
                )
            console.print(table)

        console.print(
            f"Checked {report.checked} links in {len(catalog.guides)} guides "
            f"({report.skipped} skipped)"
        )
        if report.ok:
            console.print("[green]All links resolve[/green]")
        else:
            console.print(f"[red]{len(report.issues)} broken links[/red]")

    if not report.ok:
        raise typer.Exit(1)
