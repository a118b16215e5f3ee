"""License key generation and format checks."""

from __future__ import annotations

import re
import secrets

KEY_PREFIX = "GBNB-"
KEY_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no I, O, 0, 1
KEY_GROUPS = 3
GROUP_LENGTH = 4

_KEY_RE = re.compile(
    rf"^{KEY_PREFIX}[{KEY_ALPHABET}]{{{GROUP_LENGTH}}}(-[{KEY_ALPHABET}]{{{GROUP_LENGTH}}}){{{KEY_GROUPS - 1}}}$"
)


def generate_license_key() -> str:
    """Generate a random key such as ``GBNB-7KQ2-MX9P-AB3D``."""
    groups = (
        "".join(secrets.choice(KEY_ALPHABET) for _ in range(GROUP_LENGTH))
        for _ in range(KEY_GROUPS)
    )
    return KEY_PREFIX + "-".join(groups)


def normalize_license_key(key: str) -> str:
    """Trim and upper-case a user-entered key."""
    return key.strip().upper()


def looks_like_license_key(key: str) -> bool:
    """
    Loose client-side check used before activation: the key must start with
    ``GBNB-``. The ledger remains the authority on whether it exists.
    """
    return normalize_license_key(key).startswith(KEY_PREFIX)


def is_well_formed_license_key(key: str) -> bool:
    """Strict check against the generated key shape."""
    return bool(_KEY_RE.match(key))
