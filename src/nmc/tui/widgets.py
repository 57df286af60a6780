"""Custom widgets for the nmc TUI."""

from textual.widgets import Static

from nmc.display import format_size


class SelectionSummary(Static):
    """Status line with the current selection and its known size."""

    def update_selection(self, count: int, known_bytes: int, unknown: int, dry_run: bool) -> None:
        """Re-render for a new selection."""
        if count == 0:
            text = "[dim]No directories selected[/dim]"
        else:
            text = f"[bold]{count}[/bold] selected: [cyan]{format_size(known_bytes)}[/cyan]"
            if unknown:
                text += f" [dim](+{unknown} unknown)[/dim]"

        if dry_run:
            text += "  [yellow]DRY RUN[/yellow]"

        self.update(text)
