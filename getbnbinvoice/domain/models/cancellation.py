"""Cooperative cancellation token for batch runs."""

from __future__ import annotations

import threading


class CancellationToken:
    """
    Cancellation signal scoped to a single batch run.

    The token is polled between items only; setting it never interrupts work
    already in progress. Backed by a ``threading.Event`` so it can be set from
    another thread or a signal handler.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
