"""Playwright-based page renderer that prints host pages to PDF over CDP."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from playwright.sync_api import (
    Browser,
    BrowserContext,
    CDPSession,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)

from ...application.ports.page_renderer import PageRendererPort
from ...domain.errors import CaptureError, NavigationError, PageLoadTimeoutError

logger = logging.getLogger(__name__)

PRINT_TO_PDF_OPTIONS: dict[str, Any] = {
    "printBackground": True,
    "preferCSSPageSize": True,
    "marginTop": 0.4,
    "marginBottom": 0.4,
    "marginLeft": 0.4,
    "marginRight": 0.4,
}


@dataclass
class PlaywrightPageHandle:
    """An open page plus the capture session attached to it, if any."""

    page: Page
    cdp_session: CDPSession | None = None

    @property
    def url(self) -> str:
        return self.page.url


class PlaywrightPageRenderer(PageRendererPort):
    """
    Page renderer backed by Chromium through Playwright's sync API.

    Pages must be rendered with the host's login cookies, so the renderer
    either attaches to a running Chromium over CDP (the user's own browser,
    started with ``--remote-debugging-port``) or launches a persistent
    context from a profile directory that holds the session.

    Use as a context manager::

        with PlaywrightPageRenderer(cdp_endpoint="http://localhost:9222") as renderer:
            handle = renderer.open(url)
    """

    def __init__(
        self,
        *,
        cdp_endpoint: str | None = None,
        user_data_dir: Path | str | None = None,
        headless: bool = True,
        channel: str | None = None,
    ) -> None:
        """
        Args:
            cdp_endpoint: CDP URL of a running Chromium (takes precedence)
            user_data_dir: Profile directory for a persistent context
            headless: Run the launched browser headless (ignored when attaching)
            channel: Browser channel for launching (e.g. "chrome")
        """
        if cdp_endpoint is None and user_data_dir is None:
            raise ValueError("Either cdp_endpoint or user_data_dir is required")
        self._cdp_endpoint = cdp_endpoint
        self._user_data_dir = Path(user_data_dir) if user_data_dir is not None else None
        self._headless = headless
        self._channel = channel
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    def __enter__(self) -> "PlaywrightPageRenderer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> None:
        """Start Playwright and obtain a browser context."""
        self._playwright = sync_playwright().start()
        if self._cdp_endpoint:
            self._browser = self._playwright.chromium.connect_over_cdp(self._cdp_endpoint)
            self._context = (
                self._browser.contexts[0] if self._browser.contexts else self._browser.new_context()
            )
            logger.info(f"Attached to Chromium over CDP at {self._cdp_endpoint}")
        else:
            assert self._user_data_dir is not None
            self._user_data_dir.mkdir(parents=True, exist_ok=True)
            self._context = self._playwright.chromium.launch_persistent_context(
                str(self._user_data_dir),
                headless=self._headless,
                channel=self._channel,
            )
            logger.info(f"Launched Chromium with profile {self._user_data_dir}")

    def stop(self) -> None:
        """Release the context and browser. Pages of an attached browser stay open."""
        try:
            if self._context is not None and self._cdp_endpoint is None:
                self._context.close()
            if self._browser is not None:
                self._browser.close()
        finally:
            if self._playwright is not None:
                self._playwright.stop()
            self._context = None
            self._browser = None
            self._playwright = None

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("PlaywrightPageRenderer not started")
        return self._context

    def open(self, url: str) -> PlaywrightPageHandle:
        try:
            page = self.context.new_page()
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e
        handle = PlaywrightPageHandle(page=page)
        try:
            self.navigate(handle, url)
        except NavigationError:
            # The caller never receives the handle, so the page is closed here
            try:
                page.close()
            except PlaywrightError as e:
                logger.debug(f"Page already gone after failed navigation: {e}")
            raise
        return handle

    def navigate(self, handle: PlaywrightPageHandle, url: str) -> None:
        # "commit" returns once the response starts; load is awaited separately
        try:
            handle.page.goto(url, wait_until="commit")
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, f"timed out: {e}") from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

    def wait_for_load(self, handle: PlaywrightPageHandle, timeout_ms: int) -> None:
        try:
            handle.page.wait_for_load_state("load", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise PageLoadTimeoutError(timeout_ms, url=handle.page.url) from e

    def capture(self, handle: PlaywrightPageHandle) -> bytes:
        if handle.cdp_session is not None:
            raise CaptureError("a capture session is already attached to this page")
        try:
            handle.cdp_session = self.context.new_cdp_session(handle.page)
            result = handle.cdp_session.send("Page.printToPDF", PRINT_TO_PDF_OPTIONS)
        except PlaywrightError as e:
            raise CaptureError(str(e)) from e
        finally:
            self.detach_capture(handle)

        data = result.get("data")
        if not data:
            raise CaptureError("printToPDF returned no data")
        return base64.b64decode(data)

    def detach_capture(self, handle: PlaywrightPageHandle) -> None:
        session, handle.cdp_session = handle.cdp_session, None
        if session is None:
            return
        try:
            session.detach()
        except PlaywrightError as e:
            logger.debug(f"Capture session already gone: {e}")

    def close(self, handle: PlaywrightPageHandle) -> None:
        handle.page.close()
