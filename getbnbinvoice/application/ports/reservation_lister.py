from typing import Protocol, runtime_checkable

from ...domain.models.reservation import ReservationCandidate


@runtime_checkable
class ReservationListerPort(Protocol):
    def list_reservations(self, domain: str) -> list[ReservationCandidate]:
        """
        Read the reservation rows shown on the host's reservations listing page.

        Args:
            domain: Host domain (e.g. ``www.airbnb.com``)

        Returns:
            Candidates in page order; rows without a confirmation code are skipped

        Raises:
            NavigationError: If the listing page cannot be opened
            PageLoadTimeoutError: If the listing page does not load in time
        """
        ...
