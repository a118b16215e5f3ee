from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class DocumentStorePort(Protocol):
    def save(self, filename: str, content: bytes) -> Path:
        """
        Persist a captured PDF under the given filename.

        Args:
            filename: Final filename (e.g. ``Reservation_HM123ABCDE.pdf``)
            content: PDF bytes

        Returns:
            Path where the document was written

        Raises:
            OSError: If the document cannot be written
        """
        ...
