"""Reservation receipt and VAT invoice download commands."""

from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from getbnbinvoice.application.dto.download import MAX_BATCH_SIZE
from getbnbinvoice.application.ports.reservation_lister import ReservationListerPort
from getbnbinvoice.application.services.credit_preflight import preflight_credit_check
from getbnbinvoice.application.services.download_controller import DownloadController
from getbnbinvoice.domain.errors import RendererError
from getbnbinvoice.infrastructure.adapters.filesystem_document_store import FilesystemDocumentStore
from getbnbinvoice.infrastructure.adapters.playwright_discovery import PlaywrightInvoiceDiscovery
from getbnbinvoice.infrastructure.adapters.playwright_renderer import PlaywrightPageRenderer
from getbnbinvoice.infrastructure.adapters.playwright_reservation_lister import (
    PlaywrightReservationLister,
)
from getbnbinvoice.infrastructure.adapters.rich_batch_listener import RichBatchEventListener
from getbnbinvoice.infrastructure.cli.commands.license import build_ledger_client, build_license_store
from getbnbinvoice.infrastructure.config.settings import Settings
from getbnbinvoice.infrastructure.logging import configure_logging, new_correlation_id

app = typer.Typer(help="Download reservation receipts and VAT invoices as PDF")
console = Console()
logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = "www.airbnb.com"


def _load_settings(config_path: str | None) -> Settings:
    try:
        return Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(code=1)


def open_renderer(settings: Settings) -> PlaywrightPageRenderer:
    """Renderer for the configured browser (not started)."""
    browser = settings.browser
    return PlaywrightPageRenderer(
        cdp_endpoint=browser.cdp_endpoint,
        user_data_dir=browser.user_data_dir,
        headless=browser.headless,
        channel=browser.channel,
    )


@contextmanager
def _abort_on_interrupt(controller: DownloadController) -> Iterator[None]:
    """Turn Ctrl+C into a cooperative abort for the duration of a batch."""

    def handle_sigint(signum, frame) -> None:
        console.print("\n[yellow]Stopping after the current reservation...[/yellow]")
        controller.abort()

    previous = signal.signal(signal.SIGINT, handle_sigint)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _list_codes(lister: ReservationListerPort, domain: str) -> list[str]:
    candidates = lister.list_reservations(domain)
    return [candidate.code for candidate in candidates]


@app.command()
def single(
    code: str = typer.Argument(..., help="Reservation confirmation code, e.g. HM123ABCDE"),
    domain: str = typer.Option(DEFAULT_DOMAIN, help="Host domain"),
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
    verbose: bool = typer.Option(False, help="Show HTTP and browser logs"),
):
    """Download one reservation (not billed)."""
    configure_logging(logging.INFO, verbose=verbose)
    correlation_id = new_correlation_id()
    settings = _load_settings(config_path)

    store = build_license_store(settings)
    with open_renderer(settings) as renderer, build_ledger_client(settings, store) as ledger:
        controller = DownloadController(
            renderer=renderer,
            discovery=PlaywrightInvoiceDiscovery(settings.discovery.invoice_link_selector),
            store=FilesystemDocumentStore(settings.downloads.dir),
            ledger=ledger,
        )
        result = controller.start_single(code, domain)

    if not result.success:
        console.print(f"[red]{code}: {result.error}[/red]")
        console.print(f"[dim]correlation_id={correlation_id}[/dim]")
        raise typer.Exit(code=1)

    for path in result.files:
        console.print(f"[green]Saved[/green] {path}")


@app.command()
def batch(
    codes: list[str] = typer.Argument(None, help="Reservation codes (at most 25 are processed)"),
    domain: str = typer.Option(DEFAULT_DOMAIN, help="Host domain"),
    from_listing: bool = typer.Option(False, help="Take the codes from the host's reservations listing"),
    check_credits: bool = typer.Option(True, help="Check the credit balance before starting"),
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
    verbose: bool = typer.Option(False, help="Show HTTP and browser logs"),
):
    """
    Download several reservations, spending one credit per success.

    Press Ctrl+C to stop; the reservation in progress finishes first.
    """
    configure_logging(logging.INFO, verbose=verbose)
    correlation_id = new_correlation_id()
    settings = _load_settings(config_path)

    store = build_license_store(settings)
    with open_renderer(settings) as renderer, build_ledger_client(settings, store) as ledger:
        selected = list(codes or [])
        if from_listing:
            try:
                listed = _list_codes(PlaywrightReservationLister(renderer), domain)
                selected.extend(c for c in listed if c not in selected)
            except RendererError as e:
                console.print(f"[red]Could not read the reservations listing: {e}[/red]")
                raise typer.Exit(code=1)

        if not selected:
            console.print("[yellow]No reservation codes given[/yellow]")
            raise typer.Exit(code=1)

        if len(selected) > MAX_BATCH_SIZE:
            console.print(
                f"[yellow]{len(selected)} reservations selected, "
                f"only the first {MAX_BATCH_SIZE} will be processed[/yellow]"
            )

        if check_credits:
            blocked = preflight_credit_check(ledger, store, min(len(selected), MAX_BATCH_SIZE))
            if blocked:
                console.print(f"[red]{blocked}[/red]")
                raise typer.Exit(code=1)

        controller = DownloadController(
            renderer=renderer,
            discovery=PlaywrightInvoiceDiscovery(settings.discovery.invoice_link_selector),
            store=FilesystemDocumentStore(settings.downloads.dir),
            ledger=ledger,
        )
        with _abort_on_interrupt(controller):
            summary = controller.start_batch(
                selected,
                domain,
                listener=RichBatchEventListener(console=console),
                correlation_id=correlation_id,
            )

    if summary.cancelled:
        console.print("[yellow]Batch cancelled[/yellow]")
    if summary.error or summary.failed:
        raise typer.Exit(code=1)


@app.command("list")
def list_reservations(
    domain: str = typer.Option(DEFAULT_DOMAIN, help="Host domain"),
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
):
    """Show the reservations on the host's listing page."""
    configure_logging(logging.WARNING)
    settings = _load_settings(config_path)

    try:
        with open_renderer(settings) as renderer:
            candidates = PlaywrightReservationLister(renderer).list_reservations(domain)
    except RendererError as e:
        console.print(f"[red]Could not read the reservations listing: {e}[/red]")
        raise typer.Exit(code=1)

    if not candidates:
        console.print("[yellow]No reservations found[/yellow]")
        return

    table = Table(title=f"Reservations ({len(candidates)})", show_header=True, header_style="bold")
    table.add_column("Code", style="cyan")
    table.add_column("Guest", style="green")
    table.add_column("Check-in")
    table.add_column("Amount", justify="right")
    for candidate in candidates:
        table.add_row(candidate.code, candidate.guest or "", candidate.checkin or "", candidate.amount or "")
    console.print(table)
