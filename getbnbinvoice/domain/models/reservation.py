"""Domain models for reservations and their captured document sets."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReservationDownload:
    """
    Files produced for one reservation by the capture pipeline.

    Attributes:
        code: Reservation confirmation code
        files: Persisted filenames, receipt first, then secondary documents in page order
        invoice_count: Number of secondary documents discovered on the detail page
    """

    code: str
    files: list[str] = field(default_factory=list)
    invoice_count: int = 0

    def __post_init__(self) -> None:
        """Validate download result."""
        if not self.code:
            raise ValueError("code must be non-empty")
        if not self.files:
            raise ValueError("files must contain at least the receipt")
        if self.invoice_count < 0:
            raise ValueError("invoice_count must be >= 0")
        if len(self.files) != self.invoice_count + 1:
            raise ValueError(
                f"files must hold the receipt plus {self.invoice_count} invoice(s), got {len(self.files)}"
            )

    @property
    def receipt(self) -> str:
        """Filename of the reservation receipt."""
        return self.files[0]

    @property
    def invoices(self) -> list[str]:
        """Filenames of the secondary documents, in page order."""
        return self.files[1:]


@dataclass(frozen=True)
class ReservationCandidate:
    """
    A reservation row found on the host's reservations listing page.

    Attributes:
        code: Confirmation code (``HM`` followed by at least six alphanumerics)
        guest: Guest display name, if found
        amount: Payout amount text as shown (e.g. ``€123.45``), if found
        checkin: Check-in date text as shown, if found
    """

    code: str
    guest: str | None = None
    amount: str | None = None
    checkin: str | None = None

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("code must be non-empty")
