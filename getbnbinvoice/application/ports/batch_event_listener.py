"""Port interface for observing batch progress."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..dto.events import BatchEvent


class BatchEventListenerPort(ABC):
    """Port for receiving progress, credit and completion events from a batch run."""

    @abstractmethod
    def notify(self, event: BatchEvent) -> None:
        """
        Receive one event.

        Called synchronously from the batch loop, in emission order.
        Exceptions raised here are logged by the emitter and never stop the run.

        Args:
            event: ProgressEvent, CreditUpdateEvent or BatchCompleteEvent
        """
        pass
