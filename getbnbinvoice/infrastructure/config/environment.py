"""Environment variable loading from .env files with precedence support."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Optional settings read from the environment (gracefully degrade when missing)
OPTIONAL_ENV_VARS = {
    "GETBNBINVOICE_CONFIG": "Custom configuration file path (defaults to getbnbinvoice.toml)",
    "GETBNBINVOICE_LICENSE_KEY": "License key (overrides the key stored by `license activate`)",
    "GETBNBINVOICE_LEDGER_URL": "Base URL of the credit ledger service",
    "GETBNBINVOICE_CDP_ENDPOINT": "CDP endpoint of a running, logged-in Chromium (e.g. http://localhost:9222)",
    "GETBNBINVOICE_HEADLESS": "Run the persistent-profile browser headless (true/false)",
}


def load_environment_variables(dotenv_path: Path | str | None = None) -> None:
    """
    Load environment variables from .env file with automatic detection.

    Environment variables from system environment take precedence over .env file values
    (python-dotenv's load_dotenv() with override=False).

    Args:
        dotenv_path: Optional path to .env file. If None, searches for .env file in:
                     - Current working directory
                     - Parent directories (up to 3 levels)
    """
    if dotenv_path is None:
        current = Path.cwd()
        search_paths = [
            current / ".env",
            current.parent / ".env",
            current.parent.parent / ".env",
            current.parent.parent.parent / ".env",
        ]

        for path in search_paths:
            if path.exists():
                dotenv_path = path
                logger.debug(f"Loading .env file from: {path}")
                break

        if dotenv_path is None:
            load_dotenv(override=False)
            return

    dotenv_path = Path(dotenv_path)
    if dotenv_path.exists():
        load_dotenv(dotenv_path, override=False)
        logger.debug(f"Loaded .env file from: {dotenv_path}")
    else:
        logger.debug(f".env file not found at: {dotenv_path}")


def get_env(key: str, default: str | None = None) -> str | None:
    """
    Get environment variable value.

    Args:
        key: Environment variable name
        default: Default value if not found

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """
    Get boolean environment variable.

    Accepts: 'true', '1', 'yes', 'on' (case-insensitive) → True
            'false', '0', 'no', 'off' (case-insensitive) → False

    Args:
        key: Environment variable name
        default: Default value if unset or unrecognized

    Returns:
        Boolean value
    """
    value = os.getenv(key, "").lower().strip()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def get_license_key_override() -> str | None:
    """
    License key supplied through the environment, if any.

    Takes precedence over the key stored on disk, so CI jobs and servers can
    run batches without `license activate`.
    """
    value = get_env("GETBNBINVOICE_LICENSE_KEY")
    if value and value.strip():
        return value.strip().upper()
    return None
