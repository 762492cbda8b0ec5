"""
Provides methods for checking the integrity of downloaded media files.
"""

import logging
from pathlib import Path

log = logging.getLogger(__name__)


class FileIntegrityChecker:
    """A collection of static methods for validating downloaded payloads."""

    HTML_MARKER = b"<html>"

    @staticmethod
    def check_media_payload(filepath: Path) -> bool:
        """
        Checks that a downloaded file can be read and is not an error page.

        Some hosts answer with an HTML error page instead of the media; such a
        file starts with ``<html>``.

        Args:
            filepath: Path to the downloaded file.

        Returns:
            True if the file looks like real media, False otherwise.
        """
        marker = FileIntegrityChecker.HTML_MARKER
        try:
            with open(filepath, "rb") as f:
                head = f.read(len(marker))
        except OSError as e:
            log.warning(f"Integrity check failed for '{filepath}': {e}")
            return False

        if head.startswith(marker):
            log.warning(
                f"Integrity check failed for '{filepath}': received an HTML page."
            )
            return False
        return True
