"""Credit ledger service commands."""

from __future__ import annotations

import logging

import typer
import uvicorn
from rich.console import Console

from getbnbinvoice.infrastructure.adapters.sqlite_ledger_repository import SqliteLedgerRepository
from getbnbinvoice.infrastructure.config.settings import Settings
from getbnbinvoice.infrastructure.ledger_api.server import create_app
from getbnbinvoice.infrastructure.logging import configure_logging

app = typer.Typer(help="Run the credit ledger service")
console = Console()
logger = logging.getLogger(__name__)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind"),
    port: int = typer.Option(8080, help="Port to listen on"),
    db_path: str | None = typer.Option(None, help="SQLite database (defaults to [ledger_server].db_path)"),
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
    verbose: bool = typer.Option(False, help="Show access logs"),
):
    """Serve /register, /checkCredit and /useCredit over HTTP."""
    configure_logging(logging.INFO, verbose=verbose)

    try:
        settings = Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(code=1)

    server_settings = settings.ledger_server
    repository = SqliteLedgerRepository(db_path or server_settings.db_path)
    ledger_app = create_app(
        repository,
        free_credits=server_settings.free_credits,
        max_registrations_per_ip=server_settings.max_registrations_per_ip,
    )

    logger.info(f"Ledger database: {repository.db_path}")
    # log_config=None keeps the logging configured above
    uvicorn.run(ledger_app, host=host, port=port, log_config=None)
