"""Filesystem document store with atomic writes."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class FilesystemDocumentStore:
    """Writes captured PDFs into a downloads directory."""

    def __init__(self, downloads_dir: Path | str | None = None) -> None:
        """
        Args:
            downloads_dir: Target directory (default: downloads)
        """
        if downloads_dir is None:
            downloads_dir = Path("downloads")
        self.downloads_dir = Path(downloads_dir)

    def save(self, filename: str, content: bytes) -> Path:
        """
        Save content under filename atomically (write to temp file, then rename).

        An existing file with the same name is replaced.

        Raises:
            ValueError: If filename is not a bare file name
            OSError: If the document cannot be written
        """
        if not filename or Path(filename).name != filename:
            raise ValueError(f"Invalid document filename: {filename!r}")

        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        path = self.downloads_dir / filename

        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=self.downloads_dir,
            prefix=f".{filename}.tmp.",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            try:
                temp_file.write(content)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            except OSError:
                temp_file.close()
                temp_path.unlink(missing_ok=True)
                raise

        try:
            os.replace(temp_path, path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Saved {path}", extra={"path": str(path), "bytes": len(content)})
        return path
