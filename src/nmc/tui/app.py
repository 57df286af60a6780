"""Main TUI application for nmc."""

from datetime import datetime
from typing import Sequence

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import DataTable, Footer, Header

from nmc.cleaner import delete_matches
from nmc.config import ScanSettings
from nmc.display import display_path, format_age, format_size
from nmc.models import DeletionStatus, DeletionSummary, MatchRecord
from nmc.tui.screens import ConfirmDeleteScreen
from nmc.tui.widgets import SelectionSummary

SELECTED_MARK = "[green]✓[/green]"
UNSELECTED_MARK = "[dim]·[/dim]"


class NmcApp(App):
    """Interactive browser for matched directories."""

    TITLE = "nmc"
    SUB_TITLE = "Node Modules Cleaner"

    CSS = """
    #matches {
        height: 1fr;
    }
    #selection {
        height: 1;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("space", "toggle_select", "Select"),
        Binding("a", "select_all", "Select All"),
        Binding("u", "clear_selection", "Deselect All"),
        Binding("d", "delete_selected", "Delete Selected"),
    ]

    def __init__(
        self,
        records: Sequence[MatchRecord],
        settings: ScanSettings,
        dry_run: bool = False,
    ):
        super().__init__()
        self.records: dict[str, MatchRecord] = {r.path: r for r in records}
        self.settings = settings
        self.dry_run = dry_run
        self.selected: set[str] = set()
        self._select_column = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="main-container"):
            yield DataTable(id="matches")
            yield SelectionSummary(id="selection")
        yield Footer()

    def on_mount(self) -> None:
        """Fill the table with the scan results."""
        table = self.query_one("#matches", DataTable)
        table.cursor_type = "row"
        self._select_column = table.add_column("", key="selected")
        table.add_column("Size", key="size")
        table.add_column("Modified", key="modified")
        table.add_column("Path", key="path")

        root = str(self.settings.root)
        now = datetime.now()
        for record in self.records.values():
            size = format_size(record.size_bytes) if record.size_bytes is not None else "?"
            table.add_row(
                UNSELECTED_MARK,
                size,
                format_age(record.modified_at, now),
                escape(display_path(record.path, root)),
                key=record.path,
            )

        self._update_selection_info()
        table.focus()

    def _update_selection_info(self) -> None:
        chosen = [self.records[p] for p in self.selected]
        known = sum(r.size_bytes for r in chosen if r.size_bytes is not None)
        unknown = sum(1 for r in chosen if r.size_bytes is None)
        summary = self.query_one("#selection", SelectionSummary)
        summary.update_selection(len(chosen), known, unknown, self.dry_run)

    def _set_mark(self, path: str, selected: bool) -> None:
        table = self.query_one("#matches", DataTable)
        table.update_cell(path, self._select_column, SELECTED_MARK if selected else UNSELECTED_MARK)

    def action_toggle_select(self) -> None:
        """Toggle selection of the highlighted row."""
        table = self.query_one("#matches", DataTable)
        if table.row_count == 0:
            return

        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        path = str(row_key.value)

        if path in self.selected:
            self.selected.remove(path)
        else:
            self.selected.add(path)

        self._set_mark(path, path in self.selected)
        self._update_selection_info()

    def action_select_all(self) -> None:
        """Select every remaining directory."""
        for path in self.records:
            if path not in self.selected:
                self.selected.add(path)
                self._set_mark(path, True)
        self._update_selection_info()

    def action_clear_selection(self) -> None:
        """Deselect everything."""
        for path in self.selected:
            self._set_mark(path, False)
        self.selected.clear()
        self._update_selection_info()

    def action_delete_selected(self) -> None:
        """Ask for confirmation, then delete the selection."""
        if not self.selected:
            self.notify("No directories selected", severity="warning")
            return

        chosen = [self.records[p] for p in self.selected]
        known = sum(r.size_bytes or 0 for r in chosen)
        verb = "Simulate deleting" if self.dry_run else "Delete"
        message = f"{verb} {len(chosen)} directories ({format_size(known)})?"

        def _on_answer(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._delete_selected, thread=True, exclusive=True)

        self.push_screen(ConfirmDeleteScreen(message), _on_answer)

    def _delete_selected(self) -> None:
        """Delete in a background thread."""
        chosen = [self.records[p] for p in sorted(self.selected)]
        summary = delete_matches(
            chosen,
            concurrency=self.settings.concurrency,
            dry_run=self.dry_run,
            target_name=self.settings.target_name,
        )
        self.call_from_thread(self.apply_summary, summary)

    def apply_summary(self, summary: DeletionSummary) -> None:
        """Drop removed rows and report the outcome."""
        table = self.query_one("#matches", DataTable)

        if not summary.dry_run:
            for result in summary.results:
                if result.status in (DeletionStatus.DELETED, DeletionStatus.MISSING):
                    if result.path in self.records:
                        table.remove_row(result.path)
                        del self.records[result.path]
                    self.selected.discard(result.path)

        self._update_selection_info()

        if summary.dry_run:
            self.notify(f"Dry run: would free {format_size(summary.bytes_freed)}", timeout=5)
        else:
            self.notify(
                f"Cleaned {summary.deleted_count} directories, "
                f"freed {format_size(summary.bytes_freed)}",
                timeout=5,
            )

        for failure in summary.failures:
            self.notify(
                escape(f"{failure.path}: {failure.error}"), severity="error", timeout=8
            )


def run_tui(
    records: Sequence[MatchRecord],
    settings: ScanSettings,
    dry_run: bool = False,
) -> None:
    """Run the interactive TUI.

    Args:
        records: Sorted and filtered scan results to browse
        settings: Run configuration (root, target name, concurrency)
        dry_run: If True, don't actually delete directories
    """
    app = NmcApp(records, settings, dry_run=dry_run)
    app.run()
