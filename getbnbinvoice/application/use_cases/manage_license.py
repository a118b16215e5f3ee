"""Client-side license activation and status."""

from __future__ import annotations

import logging

from ...domain.errors import InvalidKeyError
from ...domain.services.license_key import looks_like_license_key, normalize_license_key
from ..dto.ledger import CreditBalance
from ..ports.credit_ledger import CreditLedgerPort
from ..ports.license_store import LicenseStorePort

logger = logging.getLogger(__name__)


class LicenseFormatError(ValueError):
    """Raised when an entered key does not have the GBNB-XXXX-XXXX-XXXX shape."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__("Invalid key format (GBNB-XXXX-XXXX-XXXX).")


def activate_license(
    ledger: CreditLedgerPort,
    license_store: LicenseStorePort,
    key: str,
) -> CreditBalance:
    """
    Validate a user-entered key against the ledger and store it.

    Args:
        ledger: Credit ledger used to verify the key
        license_store: Where the key is kept on success
        key: Key as typed by the user (trimmed and upper-cased here)

    Returns:
        Balance of the activated key

    Raises:
        LicenseFormatError: If the key does not start with ``GBNB-``
        InvalidKeyError: If the ledger does not know the key (nothing is stored)
        LedgerError: If the ledger cannot be asked
    """
    normalized = normalize_license_key(key)
    if not looks_like_license_key(normalized):
        raise LicenseFormatError(normalized)

    balance = ledger.check_credit(normalized)
    license_store.set_key(normalized)
    logger.info("License activated", extra={"remaining": balance.remaining})
    return balance


def license_status(
    ledger: CreditLedgerPort,
    license_store: LicenseStorePort,
) -> CreditBalance | None:
    """
    Balance of the stored key, or None when no key is stored.

    A stored key the ledger reports as invalid is forgotten before the
    InvalidKeyError propagates.
    """
    key = license_store.get_key()
    if not key:
        return None
    try:
        return ledger.check_credit(key)
    except InvalidKeyError:
        logger.warning("Stored license key was rejected by the ledger, clearing it")
        license_store.clear()
        raise
