"""Use case for capturing one reservation's receipt and VAT invoices as PDFs."""

from __future__ import annotations

import logging
import time
from typing import Callable

from ...domain.models.reservation import ReservationDownload
from ...domain.services.artifact_naming import (
    invoice_filename,
    receipt_filename,
    reservation_detail_url,
)
from ..ports.document_discovery import DocumentDiscoveryPort
from ..ports.document_store import DocumentStorePort
from ..ports.page_renderer import PageHandle, PageRendererPort

logger = logging.getLogger(__name__)

PAGE_LOAD_TIMEOUT_MS = 15_000
RECEIPT_SETTLE_SECONDS = 3.0
INVOICE_SETTLE_SECONDS = 2.0


def download_reservation(
    code: str,
    domain: str,
    renderer: PageRendererPort,
    discovery: DocumentDiscoveryPort,
    store: DocumentStorePort,
    sleep: Callable[[float], None] = time.sleep,
) -> ReservationDownload:
    """
    Capture a reservation's detail page and every VAT invoice it links to.

    Steps:
    1. Open the detail page in a new background page and wait for load
    2. Let client-side rendering settle, print the receipt, save it
    3. Discover invoice links on the detail page
    4. For each invoice in page order: navigate the same page, wait, settle,
       print, save
    5. Close the page

    Any failure triggers best-effort cleanup (capture session, page) and is
    re-raised unchanged. Nothing is retried here; callers re-run the whole
    pipeline.

    Args:
        code: Reservation confirmation code
        domain: Host domain (e.g. ``www.airbnb.com``)
        renderer: PageRendererPort for page lifecycle and PDF capture
        discovery: DocumentDiscoveryPort for finding invoice links
        store: DocumentStorePort for persisting PDFs
        sleep: Sleep function for settle delays (injected in tests)

    Returns:
        ReservationDownload listing the receipt then the invoices

    Raises:
        PageLoadTimeoutError: If a page does not load within 15s
        NavigationError: If a page cannot be opened or navigated
        CaptureError: If printing fails
        OSError: If a PDF cannot be saved
    """
    url = reservation_detail_url(code, domain)
    logger.info(f"Opening reservation: {url}", extra={"reservation_code": code})

    handle: PageHandle | None = None
    try:
        handle = renderer.open(url)
        renderer.wait_for_load(handle, PAGE_LOAD_TIMEOUT_MS)
        sleep(RECEIPT_SETTLE_SECONDS)

        receipt_pdf = renderer.capture(handle)
        receipt = receipt_filename(code)
        store.save(receipt, receipt_pdf)
        logger.info(f"Downloaded: {receipt}", extra={"reservation_code": code, "file": receipt})

        invoice_urls = discovery.find_document_urls(handle)
        if not invoice_urls:
            logger.info(f"No VAT invoices found for {code}", extra={"reservation_code": code})

        invoices: list[str] = []
        for index, invoice_url in enumerate(invoice_urls, start=1):
            logger.info(f"Opening invoice: {invoice_url}", extra={"reservation_code": code})
            renderer.navigate(handle, invoice_url)
            renderer.wait_for_load(handle, PAGE_LOAD_TIMEOUT_MS)
            sleep(INVOICE_SETTLE_SECONDS)

            invoice_pdf = renderer.capture(handle)
            filename = invoice_filename(code, index, len(invoice_urls))
            store.save(filename, invoice_pdf)
            invoices.append(filename)
            logger.info(f"Downloaded: {filename}", extra={"reservation_code": code, "file": filename})

        renderer.close(handle)
    except Exception as e:
        logger.error(
            f"Error processing {code}: {e}",
            extra={"reservation_code": code, "error": str(e)},
        )
        if handle is not None:
            _cleanup(renderer, handle)
        raise

    return ReservationDownload(
        code=code,
        files=[receipt, *invoices],
        invoice_count=len(invoice_urls),
    )


def _cleanup(renderer: PageRendererPort, handle: PageHandle) -> None:
    """Release the capture session and close the page, ignoring failures."""
    try:
        renderer.detach_capture(handle)
    except Exception as e:
        logger.debug(f"Ignoring capture detach failure during cleanup: {e}")
    try:
        renderer.close(handle)
    except Exception as e:
        logger.debug(f"Ignoring page close failure during cleanup: {e}")
