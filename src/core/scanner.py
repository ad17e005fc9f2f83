"""Batch scanner: one pass over the pending partition."""

from __future__ import annotations

import logging

from core.models import ScanSummary
from core.ports import QueuePort
from core.processor import ItemProcessor

LOGGER = logging.getLogger(__name__)


class BatchScanner:
    """Feed every pending item through the processor, strictly in id order."""

    def __init__(self, queue: QueuePort, processor: ItemProcessor) -> None:
        self._queue = queue
        self._processor = processor

    async def run_once(self) -> ScanSummary:
        """List pending once and process each item sequentially."""

        summary = ScanSummary()
        items = self._queue.list_pending()
        if not items:
            LOGGER.debug("No pending items")
            return summary

        LOGGER.info("Found %s pending items", len(items))
        for item in items:
            outcome = await self._processor.process(item)
            summary.record(outcome)

        LOGGER.info(
            "Scan complete: processed=%s, %s",
            summary.processed,
            ", ".join(f"{outcome.value}={count}" for outcome, count in sorted(summary.outcomes.items())),
        )
        return summary
