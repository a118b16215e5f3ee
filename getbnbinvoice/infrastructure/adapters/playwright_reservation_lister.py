"""Read reservation candidates from the host's reservations listing page."""

from __future__ import annotations

import logging

from ...application.ports.page_renderer import PageRendererPort
from ...domain.models.reservation import ReservationCandidate
from ...domain.services.reservation_listing import parse_reservation_rows

logger = logging.getLogger(__name__)

LISTING_LOAD_TIMEOUT_MS = 15_000
ROW_SELECTOR = 'tr[data-testid="host-reservations-table-row"]'

# Snapshot each row as plain data; parsing happens in Python
_SNAPSHOT_ROWS = """
rows => rows.map(row => {
  const firstLink = row.querySelector('a');
  return {
    first_link_text: firstLink ? firstLink.textContent : null,
    cells: Array.from(row.querySelectorAll('td')).map(td => {
      const link = td.querySelector('a');
      return {
        text: td.textContent,
        link_text: link ? link.textContent : null,
        link_href: link ? link.href : null,
      };
    }),
  };
})
"""


def reservations_listing_url(domain: str) -> str:
    return f"https://{domain}/hosting/reservations"


class PlaywrightReservationLister:
    """Lists reservations by rendering the listing page with the host's session."""

    def __init__(self, renderer: PageRendererPort, timeout_ms: int = LISTING_LOAD_TIMEOUT_MS) -> None:
        self.renderer = renderer
        self.timeout_ms = timeout_ms

    def list_reservations(self, domain: str) -> list[ReservationCandidate]:
        url = reservations_listing_url(domain)
        handle = self.renderer.open(url)
        try:
            self.renderer.wait_for_load(handle, self.timeout_ms)
            rows = handle.page.eval_on_selector_all(ROW_SELECTOR, _SNAPSHOT_ROWS)
        finally:
            self.renderer.close(handle)

        candidates = parse_reservation_rows(rows)
        logger.info(
            f"Listed {len(candidates)} reservation(s)",
            extra={"url": url, "rows": len(rows)},
        )
        return candidates
