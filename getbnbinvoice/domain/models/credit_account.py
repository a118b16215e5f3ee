"""Domain models for prepaid credit accounts held by the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class UsageRecord:
    """
    One append-only audit entry written by a successful credit consumption.

    Attributes:
        reservation_code: Code the credit was spent on (None if not supplied)
        credits_after: Balance immediately after the decrement
        used_at: Timestamp of the consumption
    """

    reservation_code: str | None
    credits_after: int
    used_at: datetime

    def __post_init__(self) -> None:
        if self.credits_after < 0:
            raise ValueError("credits_after must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "reservation_code": self.reservation_code,
            "credits_after": self.credits_after,
            "used_at": self.used_at.isoformat(),
        }


@dataclass
class CreditAccount:
    """
    A license key and its credit balance.

    Attributes:
        key: License key (``GBNB-XXXX-XXXX-XXXX``)
        email: Registered email (lower-cased)
        credits_remaining: Current balance, never negative
        credits_total: Credits granted to the account
        created_at: Registration timestamp
        last_used_at: Timestamp of the last consumption (None if never used)
        ip: Address the registration came from
        usage: Audit log entries, oldest first
    """

    key: str
    email: str
    credits_remaining: int
    credits_total: int
    created_at: datetime
    last_used_at: datetime | None = None
    ip: str | None = None
    usage: list[UsageRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate account balance."""
        if not self.key:
            raise ValueError("key must be non-empty")
        if self.credits_remaining < 0:
            raise ValueError("credits_remaining must be >= 0")
        if self.credits_total < 0:
            raise ValueError("credits_total must be >= 0")

    @property
    def has_credits(self) -> bool:
        return self.credits_remaining > 0
