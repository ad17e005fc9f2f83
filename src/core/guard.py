"""Duplicate suppression ahead of delivery.

Two independent, advisory checks:

- local: the id already has a final record (delivered or quarantined) in the
  queue, meaning the feed handed us an item we finished earlier;
- remote: the item's permalink is visible among the channel's most recent
  messages, which catches other instances or manual posts that local state
  cannot see.

The remote check only looks at a small fixed window of recent messages, so an
item delivered long ago is not detected by it. Local state stays the
authoritative guard.
"""

from __future__ import annotations

import logging

from core.config import DEFAULT_HISTORY_WINDOW
from core.context import ItemScope
from core.errors import TransientLookupError
from core.models import Partition, WorkItem
from core.ports import NotifierPort, QueuePort

LOGGER = logging.getLogger(__name__)

FINAL_PARTITIONS = (Partition.DELIVERED, Partition.QUARANTINED)


class DuplicateGuard:
    """Local and remote duplicate checks; either may be skipped on error."""

    def __init__(
        self,
        queue: QueuePort,
        notifier: NotifierPort,
        remote_check: bool = True,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ) -> None:
        self._queue = queue
        self._notifier = notifier
        self._remote_check = remote_check
        self._history_window = history_window

    def is_finalized(self, item_id: str, scope: ItemScope) -> bool:
        """Return True when the id already has a final record."""

        log = scope.adapter(LOGGER)
        for partition in FINAL_PARTITIONS:
            try:
                if self._queue.exists(item_id, partition):
                    log.info("Item %s already exists in %s", item_id, partition.value)
                    return True
            except Exception:
                log.exception("Local duplicate check against %s failed; skipping it", partition.value)
        return False

    async def seen_remotely(self, item: WorkItem, scope: ItemScope) -> bool:
        """Return True when the channel already shows this item recently."""

        log = scope.adapter(LOGGER)
        if not self._remote_check:
            return False

        reference = item.reference
        if not reference:
            log.debug("Item %s has no reference; remote check skipped", item.id)
            return False

        try:
            if not await self._notifier.has_history_access():
                log.info("No permission to read channel history; delivering %s without remote check", item.id)
                return False
            found = await self._notifier.recently_contains(reference, self._history_window)
        except TransientLookupError as exc:
            log.warning("Remote duplicate check failed for %s: %s", item.id, exc)
            return False
        except Exception:
            log.exception("Unexpected error during remote duplicate check for %s", item.id)
            return False

        if found:
            log.info("Item %s found among the last %s channel messages", item.id, self._history_window)
        return bool(found)
