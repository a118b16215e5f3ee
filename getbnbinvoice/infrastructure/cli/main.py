import typer

from ..config.environment import OPTIONAL_ENV_VARS
from .commands import (
    download as download_cmd,
    ledger as ledger_cmd,
    license as license_cmd,
)

ENV_HELP = "Environment: " + "; ".join(f"{name}: {desc}" for name, desc in OPTIONAL_ENV_VARS.items())

app = typer.Typer(help="getbnbinvoice CLI", epilog=ENV_HELP)

app.add_typer(download_cmd.app, name="download")
app.add_typer(license_cmd.app, name="license")
app.add_typer(ledger_cmd.app, name="ledger")


if __name__ == "__main__":
    app()
