"""Rich terminal display for nmc."""

import os
from datetime import datetime
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from nmc.models import Analysis, DeletionSummary, MatchRecord, SECONDS_PER_DAY

console = Console()
err_console = Console(stderr=True)

SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_size(size_bytes: float) -> str:
    """Format bytes to human-readable string (binary units, capped at GB)."""
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.1f} {SIZE_UNITS[unit_index]}"


def format_age(when: datetime, now: Optional[datetime] = None) -> str:
    """Format a timestamp as a coarse age like '5 days ago'."""
    now = now or datetime.now()
    days = int((now - when).total_seconds() // SECONDS_PER_DAY)

    if days <= 0:
        return "today"
    if days == 1:
        return "1 day ago"
    if days < 30:
        return f"{days} days ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def display_path(path: str, root: str) -> str:
    """Path relative to root when it lies inside it."""
    try:
        relative = os.path.relpath(path, root)
    except ValueError:
        return path
    if relative == "." or relative.startswith(".."):
        return path
    return relative


def show_results(
    records: Sequence[MatchRecord],
    root: str,
    target_name: str = "node_modules",
) -> None:
    """Display matched directories with size, age and path."""
    if not records:
        console.print(f"\n[green]No {target_name} directories found.[/green]\n")
        return

    console.print(f"\nFound [bold]{len(records)}[/bold] {target_name}:\n")

    now = datetime.now()
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Size", justify="right")
    table.add_column("Modified", justify="right")
    table.add_column("Path")

    for record in records:
        size = format_size(record.size_bytes) if record.size_bytes is not None else "[dim]?[/dim]"
        table.add_row(
            size, format_age(record.modified_at, now), escape(display_path(record.path, root))
        )

    console.print(table)

    known_total = sum(r.size_bytes for r in records if r.size_bytes is not None)
    unknown = sum(1 for r in records if r.size_bytes is None)
    line = f"\n  [bold]Total: {format_size(known_total)}[/bold]"
    if unknown:
        line += f" [dim]({unknown} with unknown size)[/dim]"
    console.print(line + "\n")


def show_deletion_summary(summary: DeletionSummary) -> None:
    """Display the outcome of a deletion batch."""
    for failure in summary.failures:
        console.print(f"  [red]✗[/red] {escape(failure.path)}: {escape(failure.error or '')}")

    if summary.dry_run:
        would_delete = len(summary.results) - summary.missing_count - len(summary.failures)
        console.print(
            f"\n[yellow]DRY RUN[/yellow] - would clean {would_delete} directories, "
            f"freeing {format_size(summary.bytes_freed)}\n"
        )
        return

    console.print(
        f"\n[bold green]Cleaned {summary.deleted_count} directories, "
        f"freed {format_size(summary.bytes_freed)}[/bold green]"
    )
    if summary.missing_count:
        console.print(f"[dim]{summary.missing_count} already removed[/dim]")
    if summary.failures:
        console.print(f"[red]{len(summary.failures)} failed[/red]")
    console.print()


def show_stats(analysis: Analysis) -> None:
    """Display a timing breakdown of the scan and size phases."""
    stats = analysis.report.stats
    total = stats.elapsed_seconds + analysis.size_seconds

    table = Table(title="Timing", show_header=True, header_style="bold")
    table.add_column("Phase")
    table.add_column("Time", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Details")

    def share(seconds: float) -> str:
        return f"{seconds / total * 100:.1f}%" if total > 0 else "-"

    table.add_row(
        "Directory traversal",
        f"{stats.elapsed_seconds * 1000:.0f} ms",
        share(stats.elapsed_seconds),
        f"{stats.directories_listed} listed, {stats.unreadable} unreadable",
    )
    table.add_row(
        "Size calculation",
        f"{analysis.size_seconds * 1000:.0f} ms",
        share(analysis.size_seconds),
        f"{len(analysis.matches)} directories, {analysis.unknown_count} unknown",
    )

    console.print(table)
    console.print(f"Total time: {total * 1000:.0f} ms\n")


def show_scanning_progress() -> Progress:
    """Create spinner for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation. No input counts as 'no'."""
    from rich.prompt import Confirm

    try:
        return Confirm.ask(message, default=False)
    except EOFError:
        return False
