"""Pydantic settings for getbnbinvoice.toml configuration."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .environment import get_env, get_env_bool, load_environment_variables

DEFAULT_CONFIG_PATH = "getbnbinvoice.toml"
DEFAULT_LEDGER_URL = "https://europe-west1-getbnbinvoice.cloudfunctions.net"


class BrowserSettings(BaseModel):
    """Browser used to render and print host pages."""

    cdp_endpoint: str | None = None  # attach to a running, logged-in Chromium
    user_data_dir: str = "var/browser-profile"  # persistent profile when not attaching
    headless: bool = True
    channel: str | None = None  # e.g. "chrome" to use the installed Chrome

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable precedence."""
        load_environment_variables()

        env_endpoint = get_env("GETBNBINVOICE_CDP_ENDPOINT")
        if env_endpoint is not None:
            data["cdp_endpoint"] = env_endpoint or None
        if get_env("GETBNBINVOICE_HEADLESS") is not None:
            data["headless"] = get_env_bool("GETBNBINVOICE_HEADLESS", default=data.get("headless", True))

        super().__init__(**data)


class DownloadsSettings(BaseModel):
    """Where captured PDFs are written."""

    dir: str = "downloads"


class DiscoverySettings(BaseModel):
    """How secondary documents are found on a detail page."""

    invoice_link_selector: str = 'a[href*="/invoice/"]'


class LedgerSettings(BaseModel):
    """Credit ledger client settings."""

    base_url: str = DEFAULT_LEDGER_URL

    def __init__(self, **data: Any) -> None:
        """Initialize with environment variable precedence."""
        load_environment_variables()

        env_url = get_env("GETBNBINVOICE_LEDGER_URL")
        if env_url:
            data["base_url"] = env_url

        super().__init__(**data)

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class LicenseSettings(BaseModel):
    """Local license key storage."""

    key_file: Path = Path("var/license.json")

    @field_validator("key_file", mode="before")
    @classmethod
    def validate_key_file(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v


class LedgerServerSettings(BaseModel):
    """Ledger service (server side) settings."""

    db_path: str = "var/ledger.sqlite3"
    free_credits: int = Field(default=15, ge=0)
    max_registrations_per_ip: int = Field(default=3, ge=1)


class Settings(BaseModel):
    """Main settings loaded from getbnbinvoice.toml."""

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    downloads: DownloadsSettings = Field(default_factory=DownloadsSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    license: LicenseSettings = Field(default_factory=LicenseSettings)
    ledger_server: LedgerServerSettings = Field(default_factory=LedgerServerSettings)

    @classmethod
    def from_toml(cls, toml_path: Path | str | None = None) -> "Settings":
        """
        Load settings from getbnbinvoice.toml with environment variable precedence.

        Environment variables (system env > .env file) override TOML values.

        Args:
            toml_path: Path to the TOML file. Defaults to $GETBNBINVOICE_CONFIG,
                then getbnbinvoice.toml in the working directory.

        Returns:
            Settings instance; defaults if the file doesn't exist
        """
        load_environment_variables()

        if toml_path is None:
            toml_path = get_env("GETBNBINVOICE_CONFIG") or DEFAULT_CONFIG_PATH
        toml_path = Path(toml_path)

        if not toml_path.exists():
            return cls()

        with toml_path.open("rb") as f:
            data = tomllib.load(f)

        return cls(
            browser=BrowserSettings(**data.get("browser", {})),
            downloads=DownloadsSettings(**data.get("downloads", {})),
            discovery=DiscoverySettings(**data.get("discovery", {})),
            ledger=LedgerSettings(**data.get("ledger", {})),
            license=LicenseSettings(**data.get("license", {})),
            ledger_server=LedgerServerSettings(**data.get("ledger_server", {})),
        )
