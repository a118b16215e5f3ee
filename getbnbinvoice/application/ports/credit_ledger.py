"""Port interface for the remote credit ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..dto.ledger import CreditBalance, RegistrationResult


class CreditLedgerPort(ABC):
    """Port for spending and inspecting prepaid credits."""

    @abstractmethod
    def consume(self, reservation_code: str | None = None) -> int:
        """
        Spend one credit for the locally stored license key.

        Not idempotent: every accepted call decrements the balance once.
        Implementations must not retry it.

        Args:
            reservation_code: Reservation the credit pays for (recorded in the audit log)

        Returns:
            Remaining credits after the decrement

        Raises:
            NoLicenseError: If no key is stored (raised before any network call)
            NoCreditsError: If the balance is exhausted
            InvalidKeyError: If the ledger does not know the key
            LedgerServerError: On a 5xx answer
            LedgerTransportError: If the ledger cannot be reached
            LedgerOtherError: For any other structured error
        """
        pass

    @abstractmethod
    def check_credit(self, key: str | None = None) -> CreditBalance:
        """
        Read the balance for key (or the stored key).

        Raises:
            NoLicenseError: If no key is given or stored
            InvalidKeyError: If the ledger does not know the key
            LedgerError: For other failures
        """
        pass

    @abstractmethod
    def register(self, email: str) -> RegistrationResult:
        """
        Request a new license key for email.

        Raises:
            LedgerOtherError: With reason ``invalid_email`` or ``too_many_registrations``
            LedgerError: For other failures
        """
        pass
