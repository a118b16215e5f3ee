"""Command surface for single and batch reservation downloads."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence
from typing import Callable

from ...domain.models.cancellation import CancellationToken
from ..dto.download import BatchRequest, BatchSummary, ItemResult
from ..ports.batch_event_listener import BatchEventListenerPort
from ..ports.credit_ledger import CreditLedgerPort
from ..ports.document_discovery import DocumentDiscoveryPort
from ..ports.document_store import DocumentStorePort
from ..ports.page_renderer import PageRendererPort
from ..use_cases.batch_download import batch_download_reservations
from ..use_cases.download_reservation import download_reservation

logger = logging.getLogger(__name__)


class DownloadController:
    """
    Entry point used by the CLI (or any other front end).

    Holds the adapters shared by every run and the cancellation token of the
    batch currently in progress. Each batch gets a brand-new token, so an
    abort aimed at an earlier run can never cancel a later one.
    """

    def __init__(
        self,
        renderer: PageRendererPort,
        discovery: DocumentDiscoveryPort,
        store: DocumentStorePort,
        ledger: CreditLedgerPort,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.renderer = renderer
        self.discovery = discovery
        self.store = store
        self.ledger = ledger
        self.sleep = sleep
        # Reentrant: abort() may run in a signal handler on the thread holding the lock
        self._lock = threading.RLock()
        self._current: CancellationToken | None = None

    def start_single(self, code: str, domain: str) -> ItemResult:
        """
        Download one reservation: a single pipeline attempt, not billed.

        Failures are returned as a failed ItemResult, never raised.
        """
        try:
            download = download_reservation(
                code,
                domain,
                self.renderer,
                self.discovery,
                self.store,
                sleep=self.sleep,
            )
        except Exception as e:
            return ItemResult.failed(code, str(e))
        return ItemResult(
            code=code,
            success=True,
            files=list(download.files),
            invoice_count=download.invoice_count,
        )

    def start_batch(
        self,
        codes: Sequence[str],
        domain: str,
        listener: BatchEventListenerPort | None = None,
        correlation_id: str | None = None,
    ) -> BatchSummary:
        """Run a batch (capped at 25 codes) with a fresh cancellation token."""
        token = CancellationToken()
        with self._lock:
            self._current = token
        try:
            return batch_download_reservations(
                BatchRequest(codes=list(codes), domain=domain),
                renderer=self.renderer,
                discovery=self.discovery,
                store=self.store,
                ledger=self.ledger,
                cancellation=token,
                listener=listener,
                sleep=self.sleep,
                correlation_id=correlation_id,
            )
        finally:
            with self._lock:
                if self._current is token:
                    self._current = None

    def abort(self) -> bool:
        """
        Ask the running batch to stop before its next item.

        Always acknowledges. With no batch running this is a no-op, since the
        next batch starts with its own token.
        """
        with self._lock:
            token = self._current
        if token is None:
            logger.debug("Abort requested with no batch running")
        else:
            logger.info("Abort requested, batch will stop before the next reservation")
            token.cancel()
        return True

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._current is not None
