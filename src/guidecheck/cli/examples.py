"""CLI command for validating a package's example scripts."""

import json
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from guidecheck.cli.utils import load_config, print_result_line, print_results, summary_table
from guidecheck.core.exceptions import GuidecheckError
from guidecheck.validation.examples import ExampleValidator
from guidecheck.validation.report import build_report, write_report

console = Console()
err_console = Console(stderr=True)


def examples_command(
    directory: Annotated[
        Path, typer.Argument(help="Package directory containing the examples")
    ] = Path("."),
    name: Annotated[
        Optional[str], typer.Option("--name", "-n", help="Project name used in the report")
    ] = None,
    test_mode: Annotated[
        bool, typer.Option("--test-mode", help="Provide dummy credentials to examples")
    ] = False,
    no_readme: Annotated[
        bool, typer.Option("--no-readme", help="Skip README code blocks")
    ] = False,
    report: Annotated[
        Optional[Path], typer.Option("--report", help="Where to write the JSON report")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Validate example scripts and README snippets of a package."""
    directory = directory.resolve()
    project = name or directory.name

    try:
        config = load_config(Path.cwd(), test_mode=test_mode)
        if no_readme:
            config = replace(config, examples=replace(config.examples, validate_readme=False))

        validator = ExampleValidator(project, directory, config)
        if not json_output:
            console.print(f"[bold]{escape(project)} example validation[/bold]")
            console.print("-" * 30)
        validator.run(progress=None if json_output else lambda r: print_result_line(console, r))

        data = build_report(
            project,
            validator.summary(),
            directory=directory,
            ci_mode=config.validation.ci_mode,
            test_mode=config.validation.test_mode,
        )
        report_path = write_report(data, report or directory / config.examples.report_file)
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(data, indent=2))
    else:
        print_results(console, validator.results)
        console.print(summary_table(validator.summary(), "Example Validation"))
        console.print(f"Report written to {report_path}")

    exit_code = validator.exit_code()
    if exit_code:
        raise typer.Exit(exit_code)
