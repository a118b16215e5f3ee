"""JSON file license store."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from ..config.environment import get_license_key_override

logger = logging.getLogger(__name__)


class LicenseStoreError(Exception):
    """Raised when the license file cannot be read or written."""

    pass


class JsonFileLicenseStore:
    """
    Keeps the license key in a small JSON file.

    The GETBNBINVOICE_LICENSE_KEY environment variable, when set, takes
    precedence over the stored key for reads.
    """

    def __init__(self, key_file: Path | str | None = None, use_env_override: bool = True) -> None:
        if key_file is None:
            key_file = Path("var/license.json")
        self.key_file = Path(key_file)
        self.use_env_override = use_env_override

    def get_key(self) -> str | None:
        if self.use_env_override:
            override = get_license_key_override()
            if override:
                return override
        return self.stored_key()

    def stored_key(self) -> str | None:
        """Key stored on disk, ignoring the environment override."""
        if not self.key_file.exists():
            return None
        try:
            with self.key_file.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable license file {self.key_file}: {e}")
            return None

        key = data.get("license_key") if isinstance(data, dict) else None
        if isinstance(key, str) and key.strip():
            return key.strip()
        return None

    def set_key(self, key: str) -> None:
        payload = {
            "license_key": key,
            "activated_at": datetime.now(timezone.utc).isoformat(),
        }
        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.key_file.parent,
                prefix=f".{self.key_file.name}.tmp.",
                delete=False,
                encoding="utf-8",
            ) as temp_file:
                temp_path = Path(temp_file.name)
                json.dump(payload, temp_file, indent=2)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_path, self.key_file)
        except OSError as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise LicenseStoreError(f"Failed to save license to {self.key_file}: {e}") from e

        logger.debug(f"License saved to {self.key_file}")

    def clear(self) -> None:
        try:
            self.key_file.unlink(missing_ok=True)
        except OSError as e:
            raise LicenseStoreError(f"Failed to remove {self.key_file}: {e}") from e
