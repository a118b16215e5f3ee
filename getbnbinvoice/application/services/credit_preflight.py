"""Balance check run before a batch is started."""

from __future__ import annotations

import logging

from ...domain.errors import LedgerError
from ..ports.credit_ledger import CreditLedgerPort
from ..ports.license_store import LicenseStorePort

logger = logging.getLogger(__name__)


def preflight_credit_check(
    ledger: CreditLedgerPort,
    license_store: LicenseStorePort,
    selected: int,
) -> str | None:
    """
    Decide whether a batch of ``selected`` reservations may start.

    Credits are still enforced per item during the run. This check only
    stops the user early when the balance clearly cannot cover the
    selection. Without a stored key, or when the ledger cannot be asked, the
    batch proceeds.

    Returns:
        A message explaining why the batch is blocked, or None to proceed
    """
    if not license_store.get_key():
        return None

    try:
        balance = ledger.check_credit()
    except LedgerError as e:
        logger.warning(f"Credit check failed, proceeding: {e}", extra={"error": str(e)})
        return None

    if balance.remaining <= 0:
        return "You have no credits left. Please purchase more to continue."
    if balance.remaining < selected:
        return (
            f"You have {balance.remaining} credits but selected {selected} reservations. "
            f"Please deselect {selected - balance.remaining} reservations to continue."
        )
    return None
