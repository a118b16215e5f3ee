"""Use case for downloading a batch of reservations with credit billing."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from ...domain.errors import LedgerError, NoCreditsError
from ...domain.models.cancellation import CancellationToken
from ..dto.download import BatchRequest, BatchSummary, ItemResult
from ..dto.events import BatchCompleteEvent, CreditUpdateEvent, ProgressEvent
from ..ports.batch_event_listener import BatchEventListenerPort
from ..ports.credit_ledger import CreditLedgerPort
from ..ports.document_discovery import DocumentDiscoveryPort
from ..ports.document_store import DocumentStorePort
from ..ports.page_renderer import PageRendererPort
from ..services.event_emitter import EventEmitter
from ..services.retry import MAX_RETRIES, RETRY_DELAY_SECONDS, run_with_retry
from .download_reservation import download_reservation

logger = logging.getLogger(__name__)

DELAY_BETWEEN_RESERVATIONS_SECONDS = 2.0


def batch_download_reservations(
    request: BatchRequest,
    renderer: PageRendererPort,
    discovery: DocumentDiscoveryPort,
    store: DocumentStorePort,
    ledger: CreditLedgerPort,
    cancellation: CancellationToken | None = None,
    listener: BatchEventListenerPort | None = None,
    sleep: Callable[[float], None] = time.sleep,
    correlation_id: str | None = None,
) -> BatchSummary:
    """
    Download reservations one after another, billing one credit per success.

    Per item, in input order:
    1. Emit ``progress(downloading)``
    2. Stop with ``progress(cancelled)`` if cancellation was requested
    3. Run the capture pipeline, retrying once after a 1s pause
    4. On success, consume a credit. Running out of credits ends the batch
       right away (the item still counts as a success). Any other ledger
       failure is logged and ignored.
    5. Pause 2s before the next item

    Item failures never stop the batch. Exactly one ``batchComplete`` event is
    emitted per run. Listener failures never affect the run.

    Args:
        request: BatchRequest (codes already capped at 25)
        renderer: PageRendererPort shared by every item
        discovery: DocumentDiscoveryPort for invoice links
        store: DocumentStorePort for persisting PDFs
        ledger: CreditLedgerPort billed after each successful item
        cancellation: Token polled between items (a fresh one if omitted)
        listener: Optional BatchEventListenerPort for progress events
        sleep: Sleep function for all delays (injected in tests)
        correlation_id: Optional correlation ID for log records

    Returns:
        BatchSummary with per-item results. ``error`` is set when the batch
        stopped because credits ran out; ``cancelled`` when it was cancelled.
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    if cancellation is None:
        cancellation = CancellationToken()
    emitter = EventEmitter(listener)

    codes = request.codes
    total = len(codes)
    results: list[ItemResult] = []
    cancelled = False

    logger.info(
        f"Starting batch of {total} reservation(s) on {request.domain}",
        extra={"correlation_id": correlation_id, "total": total, "domain": request.domain},
    )

    for i, code in enumerate(codes):
        emitter.emit(ProgressEvent(current=i + 1, total=total, code=code, status="downloading"))

        if cancellation.is_cancelled:
            logger.info(
                f"Batch aborted at reservation {i + 1} of {total}",
                extra={"correlation_id": correlation_id, "reservation_code": code},
            )
            emitter.emit(ProgressEvent(current=i, total=total, code=code, status="cancelled"))
            cancelled = True
            break

        result = _download_with_retry(code, request.domain, renderer, discovery, store, sleep)

        if result.success:
            try:
                remaining = ledger.consume(code)
                emitter.emit(CreditUpdateEvent(remaining=remaining))
            except NoCreditsError:
                results.append(result)
                return _stop_out_of_credits(results, i, total, emitter, correlation_id)
            except Exception as e:
                logger.warning(
                    f"Credit deduction failed for {code}: {e}",
                    extra={"correlation_id": correlation_id, "reservation_code": code, "error": str(e)},
                    exc_info=not isinstance(e, LedgerError),
                )

        results.append(result)

        if i < total - 1 and not cancellation.is_cancelled:
            sleep(DELAY_BETWEEN_RESERVATIONS_SECONDS)

    summary = _summarize(results, cancelled=cancelled)
    emitter.emit(
        BatchCompleteEvent(
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            errors=summary.errors,
        )
    )
    logger.info(
        f"Batch finished: {summary.succeeded} succeeded, {summary.failed} failed"
        + (" (cancelled)" if cancelled else ""),
        extra={
            "correlation_id": correlation_id,
            "succeeded": summary.succeeded,
            "failed": summary.failed,
            "cancelled": cancelled,
        },
    )
    return summary


def _download_with_retry(
    code: str,
    domain: str,
    renderer: PageRendererPort,
    discovery: DocumentDiscoveryPort,
    store: DocumentStorePort,
    sleep: Callable[[float], None],
) -> ItemResult:
    """Run the pipeline under the retry policy and fold the outcome into an ItemResult."""
    try:
        download = run_with_retry(
            lambda: download_reservation(code, domain, renderer, discovery, store, sleep=sleep),
            max_retries=MAX_RETRIES,
            delay_seconds=RETRY_DELAY_SECONDS,
            sleep=sleep,
            label=code,
        )
    except Exception as e:
        return ItemResult.failed(code, str(e))
    return ItemResult(
        code=code,
        success=True,
        files=list(download.files),
        invoice_count=download.invoice_count,
    )


def _stop_out_of_credits(
    results: list[ItemResult],
    index: int,
    total: int,
    emitter: EventEmitter,
    correlation_id: str,
) -> BatchSummary:
    """
    Build the partial summary for a batch that ran out of credits after item index.

    The stop is reported as a credit condition, not as item failures: failed is
    0 and errors is empty even when earlier items failed. Per-item outcomes
    stay available in ``results``.
    """
    message = f"Out of credits after {index + 1} of {total} reservations"
    logger.warning(message, extra={"correlation_id": correlation_id})

    succeeded = sum(1 for r in results if r.success)
    summary = BatchSummary(
        total=index + 1,
        succeeded=succeeded,
        failed=0,
        errors=[],
        error=message,
        results=results,
    )
    emitter.emit(BatchCompleteEvent(total=total, succeeded=succeeded, failed=0, errors=[], error=message))
    return summary


def _summarize(results: list[ItemResult], cancelled: bool) -> BatchSummary:
    succeeded = sum(1 for r in results if r.success)
    return BatchSummary(
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        errors=[f"{r.code}: {r.error}" for r in results if not r.success],
        cancelled=cancelled,
        results=results,
    )
