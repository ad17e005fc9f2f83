"""One relay cycle: fetch new items, queue them, then drain pending.

The watermark only moves after a fetch whose items were all written, and the
scan always runs, so items left over from earlier cycles are retried even when
the feed is unavailable.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.config import DEFAULT_MAX_ITEMS
from core.errors import FeedError
from core.ids import is_newer, max_id
from core.models import CycleReport
from core.ports import EnrichmentPort, FeedPort, WatermarkPort
from core.scanner import BatchScanner
from core.writer import ItemWriter

LOGGER = logging.getLogger(__name__)


class RelayCycle:
    """Orchestrates feed, watermark, writer and scanner once per run."""

    def __init__(
        self,
        feed: FeedPort,
        watermark: WatermarkPort,
        writer: ItemWriter,
        scanner: BatchScanner,
        enrichment: Optional[EnrichmentPort] = None,
        limit: int = DEFAULT_MAX_ITEMS,
    ) -> None:
        self._feed = feed
        self._watermark = watermark
        self._writer = writer
        self._scanner = scanner
        self._enrichment = enrichment
        self._limit = limit

    async def run(self) -> CycleReport:
        LOGGER.info("Starting relay cycle")
        cursor = self._watermark.read()
        report = CycleReport(cursor=cursor)

        extra = self._lookup_enrichment()
        items = self._fetch(cursor)
        report.fetched = len(items)

        if items:
            failed = self._writer.write(items, extra)
            report.written = len(items) - len(failed)
            if failed:
                LOGGER.warning(
                    "%s of %s items could not be written; watermark stays at %s",
                    len(failed),
                    len(items),
                    cursor or "none",
                )
            else:
                highest = max_id(item.id for item in items)
                if highest is not None and self._watermark.write(highest):
                    report.watermark = highest

        report.scan = await self._scanner.run_once()
        LOGGER.info(
            "Relay cycle finished: fetched=%s, written=%s, processed=%s",
            report.fetched,
            report.written,
            report.scan.processed,
        )
        return report

    def _fetch(self, cursor: Optional[str]) -> list:
        LOGGER.info("Fetching up to %s items since %s", self._limit, cursor or "start")
        try:
            fetched = list(self._feed.fetch_since(cursor, self._limit))
        except FeedError as exc:
            LOGGER.error("Feed fetch failed, processing existing items only: %s", exc)
            return []

        items = []
        for item in fetched:
            if not is_newer(item.id, cursor):
                LOGGER.warning("Feed returned item %s at or below cursor %s; ignoring it", item.id, cursor)
                continue
            items.append(item)
        if not items:
            LOGGER.info("No new items since %s", cursor or "start")
        else:
            LOGGER.info("Fetched %s new items", len(items))
        return items

    def _lookup_enrichment(self) -> Optional[dict[str, Any]]:
        if self._enrichment is None:
            return None
        try:
            return self._enrichment.lookup()
        except Exception:
            LOGGER.exception("Enrichment lookup failed; items will be sent without it")
            return None
