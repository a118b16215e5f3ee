"""Best-effort delivery of batch events to an optional listener."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..dto.events import BatchEvent
    from ..ports.batch_event_listener import BatchEventListenerPort

logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Forwards batch events to a listener without ever failing the caller.

    A missing listener is normal (nobody is watching) and only logged at
    debug level. A listener that raises is a delivery fault: it is logged as a
    warning with traceback and counted, then the run carries on.
    """

    def __init__(self, listener: BatchEventListenerPort | None = None) -> None:
        self.listener = listener
        self.delivered = 0
        self.undelivered = 0
        self.delivery_failures = 0

    def emit(self, event: BatchEvent) -> bool:
        """
        Deliver event.

        Returns:
            True if the listener accepted the event, False otherwise
        """
        if self.listener is None:
            self.undelivered += 1
            logger.debug(f"No listener attached, dropping {event.type} event")
            return False
        try:
            self.listener.notify(event)
        except Exception as e:
            self.delivery_failures += 1
            logger.warning(
                f"Listener failed to handle {event.type} event: {e}",
                extra={"event_type": event.type, "error": str(e)},
                exc_info=True,
            )
            return False
        self.delivered += 1
        return True
