from typing import Protocol, runtime_checkable

from .page_renderer import PageHandle


@runtime_checkable
class DocumentDiscoveryPort(Protocol):
    def find_document_urls(self, handle: PageHandle) -> list[str]:
        """
        List secondary document (VAT invoice) URLs linked from a loaded detail page.

        Args:
            handle: Page handle returned by PageRendererPort.open, already loaded

        Returns:
            Absolute URLs in DOM order. Duplicates are kept; an empty list
            means the reservation has no secondary documents.
        """
        ...
