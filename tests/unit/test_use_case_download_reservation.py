"""Unit tests for download_reservation use case."""

from __future__ import annotations

from pathlib import Path

import pytest

from getbnbinvoice.application.ports.page_renderer import PageRendererPort
from getbnbinvoice.application.use_cases.download_reservation import (
    INVOICE_SETTLE_SECONDS,
    PAGE_LOAD_TIMEOUT_MS,
    RECEIPT_SETTLE_SECONDS,
    download_reservation,
)
from getbnbinvoice.domain.errors import CaptureError, PageLoadTimeoutError


class MockHandle:
    def __init__(self, url: str) -> None:
        self.url = url
        self.closed = False


class MockRenderer(PageRendererPort):
    """Mock renderer recording every call."""

    def __init__(
        self,
        timeout_on: set[str] | None = None,
        fail_capture_on: set[str] | None = None,
    ) -> None:
        self.calls: list[tuple[str, str]] = []
        self.timeout_on = timeout_on or set()
        self.fail_capture_on = fail_capture_on or set()
        self.handles: list[MockHandle] = []

    def open(self, url: str) -> MockHandle:
        self.calls.append(("open", url))
        handle = MockHandle(url)
        self.handles.append(handle)
        return handle

    def navigate(self, handle: MockHandle, url: str) -> None:
        self.calls.append(("navigate", url))
        handle.url = url

    def wait_for_load(self, handle: MockHandle, timeout_ms: int) -> None:
        self.calls.append(("wait", handle.url))
        assert timeout_ms == PAGE_LOAD_TIMEOUT_MS
        if handle.url in self.timeout_on:
            raise PageLoadTimeoutError(timeout_ms, url=handle.url)

    def capture(self, handle: MockHandle) -> bytes:
        self.calls.append(("capture", handle.url))
        if handle.url in self.fail_capture_on:
            raise CaptureError("printToPDF failed")
        return f"%PDF {handle.url}".encode()

    def detach_capture(self, handle: MockHandle) -> None:
        self.calls.append(("detach", handle.url))

    def close(self, handle: MockHandle) -> None:
        self.calls.append(("close", handle.url))
        handle.closed = True


class MockDiscovery:
    def __init__(self, urls: list[str]) -> None:
        self.urls = urls

    def find_document_urls(self, handle: MockHandle) -> list[str]:
        return list(self.urls)


class MockStore:
    def __init__(self) -> None:
        self.saved: dict[str, bytes] = {}

    def save(self, filename: str, content: bytes) -> Path:
        self.saved[filename] = content
        return Path("downloads") / filename


DETAIL_URL = "https://www.airbnb.com/hosting/reservations/details/HM123ABCDE"


def test_receipt_only():
    renderer = MockRenderer()
    store = MockStore()
    sleeps: list[float] = []

    result = download_reservation(
        "HM123ABCDE", "www.airbnb.com", renderer, MockDiscovery([]), store, sleep=sleeps.append
    )

    assert result.files == ["Reservation_HM123ABCDE.pdf"]
    assert result.invoice_count == 0
    assert list(store.saved) == ["Reservation_HM123ABCDE.pdf"]
    assert store.saved["Reservation_HM123ABCDE.pdf"] == f"%PDF {DETAIL_URL}".encode()
    assert sleeps == [RECEIPT_SETTLE_SECONDS]
    assert renderer.calls == [
        ("open", DETAIL_URL),
        ("wait", DETAIL_URL),
        ("capture", DETAIL_URL),
        ("close", DETAIL_URL),
    ]


def test_single_invoice_has_no_suffix():
    renderer = MockRenderer()
    store = MockStore()

    result = download_reservation(
        "HM123ABCDE",
        "www.airbnb.com",
        renderer,
        MockDiscovery(["https://www.airbnb.com/invoice/1"]),
        store,
        sleep=lambda s: None,
    )

    assert result.files == ["Reservation_HM123ABCDE.pdf", "VAT_Invoice_HM123ABCDE.pdf"]
    assert result.invoice_count == 1


def test_multiple_invoices_in_page_order_on_same_page():
    renderer = MockRenderer()
    store = MockStore()
    sleeps: list[float] = []
    invoice_urls = ["https://www.airbnb.com/invoice/a", "https://www.airbnb.com/invoice/b"]

    result = download_reservation(
        "HM123ABCDE", "www.airbnb.com", renderer, MockDiscovery(invoice_urls), store, sleep=sleeps.append
    )

    assert result.invoices == ["VAT_Invoice_HM123ABCDE_1.pdf", "VAT_Invoice_HM123ABCDE_2.pdf"]
    assert store.saved["VAT_Invoice_HM123ABCDE_1.pdf"] == b"%PDF https://www.airbnb.com/invoice/a"
    assert store.saved["VAT_Invoice_HM123ABCDE_2.pdf"] == b"%PDF https://www.airbnb.com/invoice/b"
    assert sleeps == [RECEIPT_SETTLE_SECONDS, INVOICE_SETTLE_SECONDS, INVOICE_SETTLE_SECONDS]
    # One page is reused for every document
    assert [c for c in renderer.calls if c[0] == "open"] == [("open", DETAIL_URL)]
    assert [c for c in renderer.calls if c[0] == "navigate"] == [("navigate", u) for u in invoice_urls]
    assert renderer.calls[-1] == ("close", invoice_urls[-1])


def test_duplicate_invoice_links_are_each_captured():
    renderer = MockRenderer()
    store = MockStore()
    invoice_url = "https://www.airbnb.com/invoice/a"

    result = download_reservation(
        "HM123ABCDE",
        "www.airbnb.com",
        renderer,
        MockDiscovery([invoice_url, invoice_url]),
        store,
        sleep=lambda s: None,
    )

    assert result.invoice_count == 2
    assert result.invoices == ["VAT_Invoice_HM123ABCDE_1.pdf", "VAT_Invoice_HM123ABCDE_2.pdf"]
    assert store.saved["VAT_Invoice_HM123ABCDE_1.pdf"] == store.saved["VAT_Invoice_HM123ABCDE_2.pdf"]
    assert [c for c in renderer.calls if c[0] == "navigate"] == [("navigate", invoice_url)] * 2


def test_load_timeout_propagates_after_cleanup():
    renderer = MockRenderer(timeout_on={DETAIL_URL})
    store = MockStore()

    with pytest.raises(PageLoadTimeoutError, match="Page load timeout after 15000ms"):
        download_reservation(
            "HM123ABCDE", "www.airbnb.com", renderer, MockDiscovery([]), store, sleep=lambda s: None
        )

    assert store.saved == {}
    assert renderer.calls[-2:] == [("detach", DETAIL_URL), ("close", DETAIL_URL)]
    assert renderer.handles[0].closed


def test_invoice_capture_failure_keeps_receipt_and_raises():
    invoice_url = "https://www.airbnb.com/invoice/a"
    renderer = MockRenderer(fail_capture_on={invoice_url})
    store = MockStore()

    with pytest.raises(CaptureError):
        download_reservation(
            "HM123ABCDE",
            "www.airbnb.com",
            renderer,
            MockDiscovery([invoice_url]),
            store,
            sleep=lambda s: None,
        )

    # Earlier artifacts are not rolled back
    assert list(store.saved) == ["Reservation_HM123ABCDE.pdf"]
    assert renderer.handles[0].closed


def test_cleanup_failures_do_not_mask_original_error():
    class BrokenCloseRenderer(MockRenderer):
        def close(self, handle):
            raise RuntimeError("page already gone")

    renderer = BrokenCloseRenderer(fail_capture_on={DETAIL_URL})

    with pytest.raises(CaptureError):
        download_reservation(
            "HM123ABCDE", "www.airbnb.com", renderer, MockDiscovery([]), MockStore(), sleep=lambda s: None
        )
