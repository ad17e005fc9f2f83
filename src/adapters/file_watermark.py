"""File-backed watermark adapter.

Implements the core WatermarkPort with a single text file holding the id of
the newest item fetched so far.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from adapters.fs_atomic import write_text_atomic
from core.ids import is_newer, is_valid_id

LOGGER = logging.getLogger(__name__)

WATERMARK_FILE = "LAST_ITEM_ID.txt"


class FileWatermarkStore:
    """Persist and read back a monotonically non-decreasing cursor."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[str]:
        """Return the stored id, or None when absent, unreadable or malformed."""

        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            LOGGER.info("Watermark file %s not found", self._path)
            return None
        except OSError as exc:
            LOGGER.error("Could not read watermark file %s: %s", self._path, exc)
            return None

        value = content.strip()
        if not value:
            LOGGER.info("Watermark file %s is empty", self._path)
            return None
        if not is_valid_id(value):
            LOGGER.warning("Content of %s (%r) is not a valid item id", self._path.name, value)
            return None
        LOGGER.debug("Read watermark %s", value)
        return value

    def write(self, item_id: str) -> bool:
        """Atomically store item_id; returns False when nothing was written."""

        if not is_valid_id(item_id):
            LOGGER.error("Refusing to write invalid item id %r as watermark", item_id)
            return False

        current = self.read()
        if current is not None and not is_newer(item_id, current) and item_id != current:
            LOGGER.warning("Refusing to move watermark backwards from %s to %s", current, item_id)
            return False

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            write_text_atomic(self._path, item_id)
        except OSError as exc:
            LOGGER.error("Could not write watermark file %s: %s", self._path, exc)
            return False
        LOGGER.info("Updated %s to %s", self._path.name, item_id)
        return True
