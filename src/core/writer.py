"""Item writer: places freshly fetched items into the pending partition."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from core.errors import StorageError, ValidationError
from core.models import WorkItem
from core.ports import QueuePort

LOGGER = logging.getLogger(__name__)


class ItemWriter:
    """Serialize fetched items into pending, one record per item id."""

    def __init__(self, queue: QueuePort) -> None:
        self._queue = queue

    def write(self, items: Iterable[WorkItem], extra: Optional[dict[str, Any]] = None) -> list[str]:
        """Enqueue each item and return the ids that could not be written.

        A failure on one item does not stop the others; the caller decides
        what a partial write means for the watermark.
        """

        failed: list[str] = []
        for item in items:
            if extra:
                item = item.with_fields(extra)
            try:
                self._queue.enqueue(item)
            except (StorageError, ValidationError) as exc:
                LOGGER.error("Failed to write item %s to pending: %s", item.id, exc)
                failed.append(item.id)
                continue
            LOGGER.info("Wrote item %s to pending", item.id)
        return failed
