"""Port interface for rendering and capturing host pages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

PageHandle = Any


class PageRendererPort(ABC):
    """Port for opening pages in a logged-in browser and capturing them as PDF."""

    @abstractmethod
    def open(self, url: str) -> PageHandle:
        """
        Open a new, non-focused page and start navigating it to url.

        Does not wait for the load to complete; call wait_for_load.

        Raises:
            NavigationError: If the page cannot be created or navigation is refused
        """
        pass

    @abstractmethod
    def navigate(self, handle: PageHandle, url: str) -> None:
        """
        Point an open page at another URL (no wait).

        Raises:
            NavigationError: If navigation is refused
        """
        pass

    @abstractmethod
    def wait_for_load(self, handle: PageHandle, timeout_ms: int) -> None:
        """
        Block until the page reports load complete.

        Raises:
            PageLoadTimeoutError: If loading takes longer than timeout_ms
        """
        pass

    @abstractmethod
    def capture(self, handle: PageHandle) -> bytes:
        """
        Print the current page to PDF.

        Each call acquires an exclusive capture session, prints, and releases
        it again, so it may be called repeatedly across navigations.

        Returns:
            PDF document bytes

        Raises:
            CaptureError: If printing fails
        """
        pass

    @abstractmethod
    def detach_capture(self, handle: PageHandle) -> None:
        """Release a capture session left attached by an interrupted capture (no-op if none)."""
        pass

    @abstractmethod
    def close(self, handle: PageHandle) -> None:
        """Close the page."""
        pass
