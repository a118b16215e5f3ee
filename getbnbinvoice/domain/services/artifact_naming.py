"""Filenames for persisted reservation documents."""

from __future__ import annotations

DETAIL_URL_TEMPLATE = "https://{domain}/hosting/reservations/details/{code}"


def reservation_detail_url(code: str, domain: str) -> str:
    """Build the host's detail-page URL for a reservation."""
    return DETAIL_URL_TEMPLATE.format(domain=domain, code=code)


def receipt_filename(code: str) -> str:
    """Filename for a reservation receipt, e.g. ``Reservation_HM123ABCDE.pdf``."""
    return f"Reservation_{code}.pdf"


def invoice_filename(code: str, index: int, count: int) -> str:
    """
    Filename for a secondary (VAT invoice) document.

    A lone invoice carries no suffix; when a reservation has several, each gets
    its 1-based position in page order.

    Args:
        code: Reservation confirmation code
        index: 1-based position of the invoice on the detail page
        count: Number of invoices discovered for the reservation

    Returns:
        ``VAT_Invoice_<code>.pdf`` or ``VAT_Invoice_<code>_<index>.pdf``

    Raises:
        ValueError: If index is outside 1..count
    """
    if count < 1 or not 1 <= index <= count:
        raise ValueError(f"invoice index {index} out of range for {count} invoice(s)")
    suffix = f"_{index}" if count > 1 else ""
    return f"VAT_Invoice_{code}{suffix}.pdf"
