"""CLI interface for nmc."""

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.markup import escape

from nmc import __version__
from nmc.analyzer import analyze, select_results
from nmc.cleaner import delete_matches
from nmc.config import DEFAULT_TARGET, ScanSettings, SizeStrategy
from nmc.display import (
    confirm_action,
    console,
    err_console,
    show_deletion_summary,
    show_results,
    show_scanning_progress,
    show_stats,
)
from nmc.models import MatchRecord

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="nmc",
    help="Node Modules Cleaner - find and clean node_modules directories.",
    add_completion=False,
    pretty_exceptions_enable=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nmc version {__version__}")
        raise typer.Exit()


def _build_settings(
    path: Optional[Path],
    target: str,
    concurrency: Optional[int],
    sizer: SizeStrategy,
    timeout: Optional[float],
    older: Optional[int],
    size: bool,
) -> ScanSettings:
    values = {
        "root": path or Path.cwd(),
        "target_name": target,
        "size_strategy": sizer,
        "deadline": timeout,
        "older_than_days": older,
        "sort_by_size": size,
    }
    if concurrency is not None:
        values["concurrency"] = concurrency
    return ScanSettings(**values)


def _run(
    settings: ScanSettings,
    clean: bool,
    yes: bool,
    dry_run: bool,
    stats: bool,
    tui: bool,
) -> None:
    root = escape(str(settings.root))
    console.print(f"\n[bold blue]Scanning for {settings.target_name} in {root}...[/bold blue]\n")

    with show_scanning_progress() as progress:
        task = progress.add_task("Scanning...", total=None)
        found = 0

        def on_match(record: MatchRecord) -> None:
            nonlocal found
            found += 1
            progress.update(task, description=f"Scanning... {found} found")

        analysis = analyze(settings, on_match=on_match)

    if analysis.report.partial:
        console.print("[yellow]Scan stopped at the time limit - results are partial.[/yellow]")

    if settings.older_than_days is not None:
        console.print(
            f"Filtering to directories older than {settings.older_than_days} days...\n"
        )

    results = select_results(
        analysis.matches,
        sort_by_size_first=settings.sort_by_size,
        older_than_days=settings.older_than_days,
    )

    if tui:
        try:
            from nmc.tui import run_tui
        except ImportError:
            err_console.print("[red]TUI not available.[/red]")
            err_console.print("Install with: [bold]pip install nmc\\[tui][/bold]")
            raise typer.Exit(1)

        run_tui(results, settings, dry_run=dry_run)
        return

    show_results(results, str(settings.root), settings.target_name)

    if stats:
        show_stats(analysis)

    if not results or not (clean or dry_run):
        return

    if dry_run:
        summary = delete_matches(
            results,
            concurrency=settings.concurrency,
            dry_run=True,
            target_name=settings.target_name,
        )
        show_deletion_summary(summary)
        return

    if not yes and not confirm_action("Delete these directories?"):
        console.print("\nAborted.\n")
        return

    summary = delete_matches(
        results,
        concurrency=settings.concurrency,
        target_name=settings.target_name,
    )
    show_deletion_summary(summary)


@app.command()
def main(
    path: Optional[Path] = typer.Argument(
        None,
        help="Directory to scan (default: current directory)",
        show_default=False,
    ),
    clean: bool = typer.Option(False, "--clean", "-c", help="Clean (delete) found directories"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    older: Optional[int] = typer.Option(
        None,
        "--older",
        "-o",
        min=0,
        metavar="DAYS",
        help="Only show directories older than N days",
    ),
    size: bool = typer.Option(
        False, "--size", "-s", help="Sort by size (largest first) instead of age"
    ),
    target: str = typer.Option(
        DEFAULT_TARGET, "--target", "-t", envvar="NMC_TARGET", help="Directory name to look for"
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-j",
        min=1,
        envvar="NMC_CONCURRENCY",
        help="Worker threads (default: CPUs - 1)",
    ),
    sizer: SizeStrategy = typer.Option(
        SizeStrategy.WALK,
        "--sizer",
        envvar="NMC_SIZER",
        case_sensitive=False,
        help="Size calculation: in-process walk or one external du pass",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", metavar="SECONDS", help="Stop scanning after N seconds (partial results)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what --clean would delete without deleting"
    ),
    stats: bool = typer.Option(False, "--stats", help="Show a timing breakdown"),
    tui: bool = typer.Option(False, "--tui", help="Browse and clean in an interactive TUI"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose logging"),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Find and clean node_modules directories.

    Scans PATH for node_modules directories (without descending into them),
    lists them newest first with their size, and optionally deletes them.
    """
    _setup_logging(verbose)

    if timeout is not None and timeout <= 0:
        raise typer.BadParameter("must be greater than 0", param_hint="--timeout")

    try:
        settings = _build_settings(path, target, concurrency, sizer, timeout, older, size)
    except ValidationError as e:
        message = "; ".join(err["msg"] for err in e.errors())
        err_console.print(f"[red]Error:[/red] {escape(message)}")
        raise typer.Exit(2)

    try:
        _run(settings, clean=clean, yes=yes, dry_run=dry_run, stats=stats, tui=tui)
    except (typer.Exit, typer.Abort):
        raise
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
