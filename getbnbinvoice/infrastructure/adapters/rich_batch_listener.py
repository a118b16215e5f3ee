"""Rich-based batch event listener for terminal progress."""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from ...application.dto.events import (
    BatchCompleteEvent,
    BatchEvent,
    CreditUpdateEvent,
    ProgressEvent,
)
from ...application.ports.batch_event_listener import BatchEventListenerPort

logger = logging.getLogger(__name__)

MAX_ERRORS_SHOWN = 10


class RichBatchEventListener(BatchEventListenerPort):
    """
    Renders batch events as a progress bar, with a summary table at the end.

    In non-interactive mode (stdout is not a TTY) progress goes to the log
    instead, so piped output and CI logs stay readable.
    """

    def __init__(self, console: Console | None = None, interactive: bool | None = None) -> None:
        self.is_interactive = sys.stdout.isatty() if interactive is None else interactive
        self.console = console or Console(file=sys.stdout if self.is_interactive else sys.stderr)
        self.progress: Progress | None = None
        self.task_id: TaskID | None = None
        self.credits_remaining: int | None = None
        self.completed: BatchCompleteEvent | None = None

        if not self.is_interactive:
            logger.info("Non-interactive mode detected - using structured logging for progress")

    def notify(self, event: BatchEvent) -> None:
        if isinstance(event, ProgressEvent):
            self._on_progress(event)
        elif isinstance(event, CreditUpdateEvent):
            self.credits_remaining = event.remaining
            if self.is_interactive and self.progress is not None and self.task_id is not None:
                self.progress.update(self.task_id, credits=f"{event.remaining} credits left")
            else:
                logger.info(f"Credits remaining: {event.remaining}")
        elif isinstance(event, BatchCompleteEvent):
            self.completed = event
            self._stop_progress()
            self.display_summary(event)

    def _on_progress(self, event: ProgressEvent) -> None:
        if not self.is_interactive:
            if event.status == "cancelled":
                logger.info(f"Cancelled after {event.current}/{event.total} reservations")
            else:
                logger.info(f"Reservation {event.current}/{event.total}: {event.code}")
            return

        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                TextColumn("[green]{task.fields[credits]}"),
                TimeElapsedColumn(),
                console=self.console,
                expand=True,
            )
            self.progress.start()
            self.task_id = self.progress.add_task("Starting", total=event.total, credits="")

        assert self.task_id is not None
        if event.status == "cancelled":
            self.progress.update(
                self.task_id,
                description=f"[yellow]Cancelled[/yellow] after {event.current}",
                completed=event.current,
            )
        else:
            self.progress.update(
                self.task_id,
                description=f"[cyan]{event.code}[/cyan]",
                completed=event.current - 1,
            )

    def _stop_progress(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
            self.task_id = None

    def display_summary(self, event: BatchCompleteEvent) -> None:
        """Print the final summary for a completed run."""
        summary_table = Table(title="Batch Download Summary", show_header=True, header_style="bold")
        summary_table.add_column("Metric", style="cyan")
        summary_table.add_column("Value", style="green")

        summary_table.add_row("Reservations", str(event.total))
        summary_table.add_row("Succeeded", str(event.succeeded))
        summary_table.add_row("Failed", str(event.failed))
        if self.credits_remaining is not None:
            summary_table.add_row("Credits Remaining", str(self.credits_remaining))

        self.console.print(summary_table)

        if event.error:
            self.console.print(Panel(event.error, title="Stopped", border_style="yellow"))

        if event.errors:
            error_text = "\n".join(f"❌ {e}" for e in event.errors[:MAX_ERRORS_SHOWN])
            if len(event.errors) > MAX_ERRORS_SHOWN:
                error_text += f"\n... and {len(event.errors) - MAX_ERRORS_SHOWN} more errors"
            self.console.print(Panel(error_text, title="Errors", border_style="red"))

        logger.info(
            f"Batch download completed: {event.succeeded} succeeded, {event.failed} failed "
            f"of {event.total}"
        )
        if event.error:
            logger.warning(event.error)
