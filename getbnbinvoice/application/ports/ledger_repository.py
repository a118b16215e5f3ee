"""Port interface for the ledger service's account storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.models.credit_account import CreditAccount, UsageRecord


class LedgerRepositoryPort(ABC):
    """Port for persisting credit accounts on the ledger side."""

    @abstractmethod
    def register(self, email: str, ip: str, credits: int, max_per_ip_per_day: int) -> CreditAccount:
        """
        Create an account with a fresh key and credits.

        The duplicate-email check, the per-IP allowance check and the insert
        happen in one transaction.

        Raises:
            AlreadyRegisteredError: If email already owns an account
            TooManyRegistrationsError: If ip registered max_per_ip_per_day accounts in the last 24h
        """
        pass

    @abstractmethod
    def get_account(self, key: str) -> CreditAccount:
        """
        Fetch an account by key.

        Raises:
            InvalidKeyError: If the key is unknown
        """
        pass

    @abstractmethod
    def consume(self, key: str, reservation_code: str | None = None) -> int:
        """
        Atomically spend one credit.

        Reads the balance, and if positive decrements it by one, stamps
        last_used_at and appends a usage record, all in a single transaction.

        Returns:
            Balance after the decrement

        Raises:
            InvalidKeyError: If the key is unknown
            NoCreditsError: If the balance is zero (nothing is written)
        """
        pass

    @abstractmethod
    def usage_log(self, key: str) -> list[UsageRecord]:
        """
        Audit entries for key, oldest first.

        Raises:
            InvalidKeyError: If the key is unknown
        """
        pass
