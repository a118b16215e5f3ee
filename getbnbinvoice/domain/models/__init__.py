"""Domain models for reservation downloads and credits."""

from .cancellation import CancellationToken
from .credit_account import CreditAccount, UsageRecord
from .reservation import ReservationCandidate, ReservationDownload

__all__ = [
    "CancellationToken",
    "CreditAccount",
    "ReservationCandidate",
    "ReservationDownload",
    "UsageRecord",
]
