"""Main CLI entrypoint for guidecheck."""

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from guidecheck.cli.examples import examples_command
from guidecheck.cli.links import links_command
from guidecheck.cli.utils import load_config, print_results, summary_table
from guidecheck.cli.watch import watch_command
from guidecheck.core.config import GuidecheckConfig
from guidecheck.core.constants import get_config_path, get_results_db_path
from guidecheck.core.exceptions import GuidecheckError
from guidecheck.guides.catalog import GuideCatalog
from guidecheck.guides.markers import FailureMarker
from guidecheck.validation.cache import ResultCache
from guidecheck.validation.validator import CodeValidator

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

# Create main app
app = typer.Typer(
    name="guidecheck",
    help="Validate code samples and links in Markdown guides",
    no_args_is_help=True,
)

app.command("links")(links_command)
app.command("examples")(examples_command)
app.command("watch")(watch_command)


@app.callback()
def main_callback(
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level", "-l",
            help="Logging level: DEBUG, INFO, WARNING, ERROR",
        ),
    ] = "WARNING",
) -> None:
    """Validate code samples and links in Markdown guides."""
    log_level_upper = log_level.upper()
    if log_level_upper not in VALID_LOG_LEVELS:
        err_console.print(f"[red]Error: Invalid log level '{log_level}'[/red]")
        err_console.print(f"Valid levels: {', '.join(VALID_LOG_LEVELS)}")
        raise typer.Exit(1)

    logging.basicConfig(
        level=getattr(logging, log_level_upper),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_validation(
    config: GuidecheckConfig,
    base_path: Path,
    pattern: str | None = None,
    use_cache: bool = True,
) -> CodeValidator:
    """Extract and validate code blocks, keeping the result cache in sync."""
    cache = ResultCache(get_results_db_path(base_path)) if use_cache else None
    if cache is not None:
        cache.initialize()

    try:
        validator = CodeValidator(config, base_path=base_path, cache=cache)
        blocks = validator.extract_code_blocks(pattern)
        validator.validate_code_blocks(blocks)
        if cache is not None and pattern is None:
            removed = cache.prune({block.content_hash for block in blocks})
            logger.debug("Pruned %d stale cache entries", removed)
    finally:
        if cache is not None:
            cache.close()

    return validator


@app.command("validate")
def validate_command(
    pattern: Annotated[
        Optional[str],
        typer.Option("--pattern", "-p", help="Glob of guides to validate, relative to the guides root"),
    ] = None,
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Guides root directory")
    ] = None,
    strict: Annotated[
        bool, typer.Option("--strict", help="Fail if any block fails")
    ] = False,
    min_success_rate: Annotated[
        Optional[float],
        typer.Option("--min-success-rate", help="Required success rate in percent"),
    ] = None,
    workers: Annotated[
        Optional[int], typer.Option("--workers", "-j", help="Blocks validated in parallel")
    ] = None,
    test_mode: Annotated[
        bool, typer.Option("--test-mode", help="Provide dummy credentials to snippets")
    ] = False,
    include_marked: Annotated[
        bool, typer.Option("--include-marked", help="Also run blocks marked as failing")
    ] = False,
    no_cache: Annotated[
        bool, typer.Option("--no-cache", help="Re-run blocks that passed before")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show every result")
    ] = False,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Validate code blocks in guides."""
    base_path = Path.cwd()

    try:
        config = load_config(base_path, root=root, test_mode=test_mode)
        overrides: dict = {}
        if min_success_rate is not None:
            overrides["min_success_rate"] = min_success_rate
        if workers is not None:
            overrides["workers"] = workers
        if include_marked:
            overrides["skip_marked"] = False
        if overrides:
            config = replace(config, validation=replace(config.validation, **overrides))

        if not json_output:
            console.print(f"Validating code blocks in {base_path / config.guides.root}...")
        validator = run_validation(config, base_path, pattern, use_cache=not no_cache)
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    summary = validator.summary()
    gate = validator.passed_gate(strict)

    if json_output:
        typer.echo(json.dumps(
            {
                "summary": summary.to_dict(),
                "min_success_rate": config.validation.min_success_rate,
                "passed_gate": gate,
                "results": [r.to_dict() for r in validator.results],
                "load_errors": [str(e) for e in validator.load_errors],
            },
            indent=2,
        ))
    else:
        for error in validator.load_errors:
            console.print(f"[yellow]Skipped unreadable guide: {escape(str(error))}[/yellow]")
        print_results(console, validator.results, verbose)
        console.print(summary_table(summary, "Code Block Validation"))
        console.print(
            f"Success rate: {summary.success_rate:.1f}% "
            f"(minimum {config.validation.min_success_rate:.1f}%)"
        )
        if gate:
            console.print("[green]Validation passed[/green]")
        else:
            console.print("[red]Validation failed[/red]")

    if not gate:
        raise typer.Exit(1)


@app.command("mark")
def mark_command(
    pattern: Annotated[
        Optional[str],
        typer.Option("--pattern", "-p", help="Glob of guides to mark, relative to the guides root"),
    ] = None,
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Guides root directory")
    ] = None,
    test_mode: Annotated[
        bool, typer.Option("--test-mode", help="Provide dummy credentials to snippets")
    ] = False,
    no_cache: Annotated[
        bool, typer.Option("--no-cache", help="Re-run blocks that passed before")
    ] = False,
) -> None:
    """Validate guides and mark failing code blocks in place."""
    base_path = Path.cwd()

    try:
        config = load_config(base_path, root=root, test_mode=test_mode)
        config = replace(config, validation=replace(config.validation, skip_marked=False))
        validator = run_validation(config, base_path, pattern, use_cache=not no_cache)

        marker = FailureMarker(validator.guides_root, config.guides.contributing_guide)
        report = marker.mark(validator.results)
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    summary = validator.summary()
    console.print(f"[red]Marked {report.marked} failing blocks[/red]")
    console.print(f"[green]Cleared {report.cleared} stale markers[/green]")
    for file in report.files:
        console.print(f"  - {file}")
    console.print(f"Success rate: {summary.success_rate:.1f}%")

    if not validator.passed_gate():
        raise typer.Exit(1)


@app.command("unmark")
def unmark_command(
    pattern: Annotated[
        Optional[str],
        typer.Option("--pattern", "-p", help="Glob of guides to clean, relative to the guides root"),
    ] = None,
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Guides root directory")
    ] = None,
) -> None:
    """Remove VALIDATION_FAILED markers from guides."""
    base_path = Path.cwd()

    try:
        config = load_config(base_path, root=root)
        guides_root = base_path / config.guides.root
        catalog = GuideCatalog(
            guides_root,
            pattern=pattern or config.guides.pattern,
            exclude=config.guides.exclude,
        )
        marker = FailureMarker(guides_root, config.guides.contributing_guide)
        changed = marker.unmark(catalog.discover())
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not changed:
        console.print("[yellow]No markers found[/yellow]")
        return

    console.print(f"[green]Removed markers from {len(changed)} files[/green]")
    for path in changed:
        console.print(f"  - {path.relative_to(guides_root).as_posix()}")


@app.command("stats")
def stats_command(
    pattern: Annotated[
        Optional[str],
        typer.Option("--pattern", "-p", help="Glob of guides, relative to the guides root"),
    ] = None,
    root: Annotated[
        Optional[Path], typer.Option("--root", help="Guides root directory")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Show guide, code block and cache statistics."""
    base_path = Path.cwd()

    try:
        config = load_config(base_path, root=root)
        catalog = GuideCatalog(
            base_path / config.guides.root,
            pattern=pattern or config.guides.pattern,
            exclude=config.guides.exclude,
        )
        loaded = catalog.load()

        cache_stats = None
        db_path = get_results_db_path(base_path)
        if db_path.exists():
            cache = ResultCache(db_path)
            try:
                cache_stats = cache.stats()
            finally:
                cache.close()
    except GuidecheckError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    languages: dict[str, int] = {}
    for guide in catalog.guides:
        for language, count in guide.language_counts().items():
            languages[language] = languages.get(language, 0) + count

    if json_output:
        typer.echo(json.dumps(
            {
                "guides": [
                    {
                        "path": g.path,
                        "title": g.title,
                        "tokens": g.token_count,
                        "code_blocks": len(g.code_blocks),
                        "marked": len(g.marked_blocks),
                        "links": len(g.links),
                    }
                    for g in catalog.guides
                ],
                "languages": languages,
                "errors": [str(e) for e in loaded.errors],
                "cache": cache_stats,
            },
            indent=2,
        ))
        return

    table = Table(title="Guides")
    table.add_column("Guide", style="cyan")
    table.add_column("Title")
    table.add_column("Tokens", justify="right")
    table.add_column("Blocks", justify="right")
    table.add_column("Marked", justify="right")
    table.add_column("Links", justify="right")

    for guide in catalog.guides:
        marked = len(guide.marked_blocks)
        table.add_row(
            guide.path,
            escape(guide.title[:40] + ("..." if len(guide.title) > 40 else "")),
            str(guide.token_count),
            str(len(guide.code_blocks)),
            f"[red]{marked}[/red]" if marked else "0",
            str(len(guide.links)),
        )
    console.print(table)

    if languages:
        lang_table = Table(title="Code Blocks by Language")
        lang_table.add_column("Language", style="cyan")
        lang_table.add_column("Blocks", justify="right")
        for language, count in sorted(languages.items(), key=lambda item: (-item[1], item[0])):
            lang_table.add_row(language or "(none)", str(count))
        console.print(lang_table)

    for error in loaded.errors:
        console.print(f"[yellow]Unreadable guide: {escape(str(error))}[/yellow]")

    if cache_stats:
        console.print(f"Cached passes:   {cache_stats['entries']}")


@app.command("init")
def init_command(
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite existing configuration")
    ] = False,
    root: Annotated[
        Optional[str], typer.Option("--root", help="Guides root directory")
    ] = None,
) -> None:
    """Initialize guidecheck in the current directory."""
    base_path = Path.cwd()
    config_path = get_config_path(base_path)

    if config_path.exists() and not force:
        console.print(f"[yellow]guidecheck already initialized at {config_path}[/yellow]")
        console.print("Use --force to reinitialize")
        return

    config = GuidecheckConfig()
    if root:
        config = replace(config, guides=replace(config.guides, root=root))
    config.save(base_path)

    console.print(f"[green]guidecheck initialized at {config_path.parent}[/green]")
    console.print()
    console.print("Next steps:")
    console.print(f"  1. Put your guides under {config.guides.root}/")
    console.print("  2. Validate code blocks: guidecheck validate")
    console.print("  3. Mark failing blocks: guidecheck mark")
    console.print("  4. Check links: guidecheck links")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
