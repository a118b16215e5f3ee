"""Find VAT invoice links on a loaded reservation detail page."""

from __future__ import annotations

import logging

from playwright.sync_api import Error as PlaywrightError

from ...domain.errors import NavigationError
from .playwright_renderer import PlaywrightPageHandle

logger = logging.getLogger(__name__)

DEFAULT_INVOICE_LINK_SELECTOR = 'a[href*="/invoice/"]'

# Anchor.href is already resolved against the document base URL
_COLLECT_HREFS = "links => links.map(a => a.href)"


class PlaywrightInvoiceDiscovery:
    """Collect invoice URLs from anchors matching a CSS selector, in DOM order."""

    def __init__(self, selector: str = DEFAULT_INVOICE_LINK_SELECTOR) -> None:
        self.selector = selector

    def find_document_urls(self, handle: PlaywrightPageHandle) -> list[str]:
        try:
            hrefs = handle.page.eval_on_selector_all(self.selector, _COLLECT_HREFS)
        except PlaywrightError as e:
            raise NavigationError(handle.page.url, f"invoice discovery failed: {e}") from e

        urls = [href for href in hrefs if href]
        logger.debug(
            f"Found {len(urls)} invoice link(s)",
            extra={"url": handle.page.url, "selector": self.selector},
        )
        return urls
