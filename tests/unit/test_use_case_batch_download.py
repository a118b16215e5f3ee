"""Unit tests for batch_download_reservations use case."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from getbnbinvoice.application.dto.download import BatchRequest
from getbnbinvoice.application.dto.events import BatchCompleteEvent, CreditUpdateEvent, ProgressEvent
from getbnbinvoice.application.dto.ledger import CreditBalance, RegistrationResult
from getbnbinvoice.application.ports.batch_event_listener import BatchEventListenerPort
from getbnbinvoice.application.ports.credit_ledger import CreditLedgerPort
from getbnbinvoice.application.use_cases import batch_download
from getbnbinvoice.application.use_cases.batch_download import (
    DELAY_BETWEEN_RESERVATIONS_SECONDS,
    batch_download_reservations,
)
from getbnbinvoice.domain.errors import (
    InvalidKeyError,
    LedgerOtherError,
    LedgerServerError,
    LedgerTransportError,
    NoCreditsError,
    NoLicenseError,
    PageLoadTimeoutError,
)
from getbnbinvoice.domain.models.cancellation import CancellationToken
from getbnbinvoice.domain.models.reservation import ReservationDownload


class ScriptedPipeline:
    """
    Stands in for download_reservation.

    ``script`` maps a code to a list of outcomes consumed one per attempt:
    an exception instance is raised, an int is returned as the invoice count.
    Codes without a script succeed with no invoices.
    """

    def __init__(self, script: dict[str, list[Any]] | None = None) -> None:
        self.script = {code: list(outcomes) for code, outcomes in (script or {}).items()}
        self.attempts: list[str] = []

    def __call__(self, code, domain, renderer, discovery, store, sleep=None) -> ReservationDownload:
        self.attempts.append(code)
        outcomes = self.script.get(code)
        outcome = outcomes.pop(0) if outcomes else 0
        if isinstance(outcome, Exception):
            raise outcome
        files = [f"Reservation_{code}.pdf"] + [f"VAT_Invoice_{code}_{i}.pdf" for i in range(1, outcome + 1)]
        return ReservationDownload(code=code, files=files, invoice_count=outcome)


class MockLedger(CreditLedgerPort):
    """Mock ledger with a local balance."""

    def __init__(self, balance: int = 100, error: Exception | None = None) -> None:
        self.balance = balance
        self.error = error
        self.consumed: list[str | None] = []

    def consume(self, reservation_code: str | None = None) -> int:
        if self.error is not None:
            raise self.error
        if self.balance <= 0:
            raise NoCreditsError()
        self.balance -= 1
        self.consumed.append(reservation_code)
        return self.balance

    def check_credit(self, key: str | None = None) -> CreditBalance:
        return CreditBalance(remaining=self.balance)

    def register(self, email: str) -> RegistrationResult:
        raise NotImplementedError


class RecordingListener(BatchEventListenerPort):
    def __init__(self) -> None:
        self.events: list[Any] = []

    def notify(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def pipeline(monkeypatch) -> ScriptedPipeline:
    scripted = ScriptedPipeline()
    monkeypatch.setattr(batch_download, "download_reservation", scripted)
    return scripted


def _run(codes, ledger, listener=None, cancellation=None, sleep=None, sleeps=None):
    if sleep is None:
        sleeps = sleeps if sleeps is not None else []
        sleep = sleeps.append
    return batch_download_reservations(
        BatchRequest(codes=codes, domain="www.airbnb.com"),
        renderer=None,
        discovery=None,
        store=None,
        ledger=ledger,
        cancellation=cancellation,
        listener=listener,
        sleep=sleep,
    )


def test_all_items_succeed_in_order(pipeline):
    ledger = MockLedger(balance=10)
    listener = RecordingListener()
    sleeps: list[float] = []

    summary = _run(["HM0000001", "HM0000002", "HM0000003"], ledger, listener, sleeps=sleeps)

    assert pipeline.attempts == ["HM0000001", "HM0000002", "HM0000003"]
    assert (summary.total, summary.succeeded, summary.failed) == (3, 3, 0)
    assert summary.error is None
    assert ledger.consumed == ["HM0000001", "HM0000002", "HM0000003"]
    # No pause after the last item
    assert sleeps == [DELAY_BETWEEN_RESERVATIONS_SECONDS] * 2

    progress = listener.of_type(ProgressEvent)
    assert [(e.current, e.total, e.code, e.status) for e in progress] == [
        (1, 3, "HM0000001", "downloading"),
        (2, 3, "HM0000002", "downloading"),
        (3, 3, "HM0000003", "downloading"),
    ]
    assert [e.remaining for e in listener.of_type(CreditUpdateEvent)] == [9, 8, 7]
    completes = listener.of_type(BatchCompleteEvent)
    assert len(completes) == 1
    assert completes[0].model_dump() == {
        "type": "batchComplete",
        "total": 3,
        "succeeded": 3,
        "failed": 0,
        "errors": [],
        "error": None,
    }
    assert listener.events[-1] is completes[0]


def test_request_over_cap_processes_first_25(pipeline):
    codes = [f"HM{i:07d}" for i in range(30)]

    summary = _run(codes, MockLedger(balance=100))

    assert pipeline.attempts == codes[:25]
    assert summary.total == 25


def test_retry_once_then_success_consumes_one_credit(pipeline):
    pipeline.script = {"HM0000001": [PageLoadTimeoutError(15000), 1]}
    ledger = MockLedger(balance=5)
    sleeps: list[float] = []

    summary = _run(["HM0000001"], ledger, sleeps=sleeps)

    assert pipeline.attempts == ["HM0000001", "HM0000001"]
    assert sleeps == [1.0]
    assert summary.succeeded == 1
    assert summary.results[0].files == ["Reservation_HM0000001.pdf", "VAT_Invoice_HM0000001_1.pdf"]
    assert ledger.consumed == ["HM0000001"]


def test_item_failing_twice_is_recorded_and_batch_continues(pipeline):
    pipeline.script = {
        "HM0000001": [PageLoadTimeoutError(15000), PageLoadTimeoutError(15000)],
    }
    ledger = MockLedger(balance=5)
    listener = RecordingListener()

    summary = _run(["HM0000001", "HM0000002"], ledger, listener)

    assert pipeline.attempts == ["HM0000001", "HM0000001", "HM0000002"]
    assert (summary.total, summary.succeeded, summary.failed) == (2, 1, 1)
    assert summary.results[0].error == "Page load timeout after 15000ms"
    assert summary.errors == ["HM0000001: Page load timeout after 15000ms"]
    # Failed items are not billed
    assert ledger.consumed == ["HM0000002"]
    assert listener.of_type(BatchCompleteEvent)[0].failed == 1


def test_out_of_credits_stops_batch(pipeline):
    ledger = MockLedger(balance=1)
    listener = RecordingListener()

    summary = _run(["HM000000A", "HM000000B", "HM000000C"], ledger, listener)

    # B was captured, C was never opened
    assert pipeline.attempts == ["HM000000A", "HM000000B"]
    assert summary.total == 2
    assert summary.succeeded == 2
    assert summary.failed == 0
    assert summary.error == "Out of credits after 2 of 3 reservations"
    assert ledger.balance == 0

    completes = listener.of_type(BatchCompleteEvent)
    assert len(completes) == 1
    assert completes[0].total == 3
    assert completes[0].succeeded == 2
    assert completes[0].failed == 0
    assert completes[0].error == "Out of credits after 2 of 3 reservations"
    assert [e.remaining for e in listener.of_type(CreditUpdateEvent)] == [0]


def test_out_of_credits_after_earlier_failure_reports_no_failures(pipeline):
    pipeline.script = {"HM000000A": [PageLoadTimeoutError(15000), PageLoadTimeoutError(15000)]}
    ledger = MockLedger(balance=0)
    listener = RecordingListener()

    summary = _run(["HM000000A", "HM000000B", "HM000000C"], ledger, listener)

    assert pipeline.attempts == ["HM000000A", "HM000000A", "HM000000B"]
    assert (summary.total, summary.succeeded, summary.failed) == (2, 1, 0)
    assert summary.errors == []
    assert summary.error == "Out of credits after 2 of 3 reservations"
    # Per-item outcomes are still recorded
    assert [r.success for r in summary.results] == [False, True]

    completes = listener.of_type(BatchCompleteEvent)
    assert len(completes) == 1
    assert (completes[0].total, completes[0].succeeded, completes[0].failed) == (3, 1, 0)
    assert completes[0].errors == []
    assert completes[0].error == "Out of credits after 2 of 3 reservations"


@pytest.mark.parametrize(
    "error",
    [
        NoLicenseError(),
        InvalidKeyError(),
        LedgerServerError(503),
        LedgerTransportError("connection refused"),
        LedgerOtherError("rate_limited"),
        RuntimeError("unexpected client failure"),
    ],
)
def test_other_ledger_errors_are_logged_and_item_stays_successful(pipeline, caplog, error):
    ledger = MockLedger(error=error)
    listener = RecordingListener()

    with caplog.at_level(logging.WARNING):
        summary = _run(["HM0000001", "HM0000002"], ledger, listener)

    assert pipeline.attempts == ["HM0000001", "HM0000002"]
    assert (summary.total, summary.succeeded, summary.failed) == (2, 2, 0)
    assert summary.error is None
    assert "Credit deduction failed for HM0000001" in caplog.text
    assert "Credit deduction failed for HM0000002" in caplog.text
    assert len(listener.of_type(BatchCompleteEvent)) == 1
    assert listener.of_type(CreditUpdateEvent) == []


def test_cancellation_during_delay_stops_before_next_item(pipeline):
    token = CancellationToken()
    listener = RecordingListener()
    delays: list[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)
        # Second inter-item pause is the one before item 3
        if len(delays) == 2:
            token.cancel()

    codes = [f"HM000000{i}" for i in range(1, 6)]
    summary = _run(codes, MockLedger(balance=10), listener, cancellation=token, sleep=sleep)

    assert pipeline.attempts == codes[:2]
    assert summary.cancelled is True
    assert [r.code for r in summary.results] == codes[:2]
    assert summary.succeeded == 2

    cancelled = [e for e in listener.of_type(ProgressEvent) if e.status == "cancelled"]
    assert len(cancelled) == 1
    assert (cancelled[0].current, cancelled[0].total) == (2, 5)
    assert len(listener.of_type(BatchCompleteEvent)) == 1


def test_cancelled_before_start_attempts_nothing(pipeline):
    token = CancellationToken()
    token.cancel()
    listener = RecordingListener()

    summary = _run(["HM0000001", "HM0000002"], MockLedger(), listener, cancellation=token)

    assert pipeline.attempts == []
    assert summary.total == 0
    progress = listener.of_type(ProgressEvent)
    assert [(e.current, e.status) for e in progress] == [(1, "downloading"), (0, "cancelled")]


def test_listener_failures_do_not_affect_run(pipeline, caplog):
    class ExplodingListener(BatchEventListenerPort):
        def notify(self, event) -> None:
            raise RuntimeError("listener gone")

    with caplog.at_level(logging.WARNING):
        summary = _run(["HM0000001", "HM0000002"], MockLedger(), ExplodingListener())

    assert summary.succeeded == 2
    assert "Listener failed" in caplog.text


def test_no_listener_is_fine(pipeline):
    summary = _run(["HM0000001"], MockLedger(), listener=None)
    assert summary.succeeded == 1


def test_empty_batch_emits_single_completion(pipeline):
    listener = RecordingListener()

    summary = _run([], MockLedger(), listener)

    assert summary.total == 0
    assert [type(e) for e in listener.events] == [BatchCompleteEvent]
