"""License key registration, activation and balance commands."""

from __future__ import annotations

import logging

import typer
from rich.console import Console

from getbnbinvoice.application.use_cases.manage_license import (
    LicenseFormatError,
    activate_license,
    license_status,
)
from getbnbinvoice.domain.errors import InvalidKeyError, LedgerError, LedgerOtherError
from getbnbinvoice.infrastructure.adapters.http_credit_ledger import HttpCreditLedgerClient
from getbnbinvoice.infrastructure.adapters.json_license_store import JsonFileLicenseStore, LicenseStoreError
from getbnbinvoice.infrastructure.config.settings import Settings

app = typer.Typer(help="Register, activate and inspect your license key")
console = Console()
logger = logging.getLogger(__name__)

REGISTRATION_MESSAGES = {
    "invalid_email": "Please enter a valid email address.",
    "too_many_registrations": "Too many registrations from this network today. Try again tomorrow.",
}


def _load_settings(config_path: str | None) -> Settings:
    try:
        return Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(code=1)


def build_license_store(settings: Settings) -> JsonFileLicenseStore:
    return JsonFileLicenseStore(settings.license.key_file)


def build_ledger_client(settings: Settings, license_store: JsonFileLicenseStore) -> HttpCreditLedgerClient:
    return HttpCreditLedgerClient(settings.ledger.base_url, license_store)


@app.command()
def register(
    email: str = typer.Argument(..., help="Email address the key is issued to"),
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
    activate: bool = typer.Option(True, help="Store the issued key as the active license"),
):
    """Request a license key with free credits."""
    settings = _load_settings(config_path)
    store = build_license_store(settings)

    with build_ledger_client(settings, store) as ledger:
        try:
            result = ledger.register(email)
        except LedgerOtherError as e:
            console.print(f"[red]{REGISTRATION_MESSAGES.get(e.reason, f'Registration failed: {e.reason}')}[/red]")
            raise typer.Exit(code=1)
        except LedgerError as e:
            console.print(f"[red]Registration failed: {e}[/red]")
            raise typer.Exit(code=1)

    if result.already_registered:
        console.print("[yellow]This email is already registered. Using the existing key.[/yellow]")
    else:
        console.print(f"[green]License issued with {result.credits} free credits.[/green]")
    console.print(f"Key: [bold]{result.key}[/bold]")

    if activate:
        try:
            store.set_key(result.key)
        except LicenseStoreError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        console.print(f"[dim]Saved to {store.key_file}[/dim]")


@app.command()
def activate(
    key: str = typer.Argument(..., help="License key (GBNB-XXXX-XXXX-XXXX)"),
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
):
    """Verify a license key with the ledger and store it."""
    settings = _load_settings(config_path)
    store = build_license_store(settings)

    with build_ledger_client(settings, store) as ledger:
        try:
            balance = activate_license(ledger, store, key)
        except (LicenseFormatError, LicenseStoreError) as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        except InvalidKeyError:
            console.print("[red]Invalid license key.[/red]")
            raise typer.Exit(code=1)
        except LedgerError as e:
            console.print(f"[red]Could not verify key: {e}[/red]")
            raise typer.Exit(code=1)

    console.print(f"[green]License activated.[/green] {balance.remaining} credits remaining.")


@app.command()
def status(
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
):
    """Show the credit balance of the active license."""
    settings = _load_settings(config_path)
    store = build_license_store(settings)

    with build_ledger_client(settings, store) as ledger:
        try:
            balance = license_status(ledger, store)
        except InvalidKeyError:
            console.print("[red]The stored license key is no longer valid and was removed.[/red]")
            raise typer.Exit(code=1)
        except LedgerError as e:
            console.print(f"[red]Could not check credits: {e}[/red]")
            raise typer.Exit(code=1)

    if balance is None:
        console.print("[yellow]No license key activated. Run `getbnbinvoice license register EMAIL`.[/yellow]")
        raise typer.Exit(code=1)

    total = f" of {balance.total}" if balance.total is not None else ""
    console.print(f"{balance.remaining}{total} credits remaining")


@app.command()
def clear(
    config_path: str | None = typer.Option(None, help="Path to getbnbinvoice.toml"),
):
    """Forget the stored license key."""
    settings = _load_settings(config_path)
    try:
        build_license_store(settings).clear()
    except LicenseStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    console.print("License key removed.")
