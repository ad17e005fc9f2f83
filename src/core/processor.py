"""Core item processing pipeline.

This module is integration-agnostic. It only relies on ports for the queue
and notifications, enabling other feeds or channels without changes here.

One item goes through a strict order:
1) Structural payload validation
2) Local duplicate check (already delivered or quarantined)
3) Remote duplicate check (already visible in the channel)
4) Delivery attempt
5) Final state transition

Any failure is confined to the item being processed.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from core.context import ItemScope
from core.errors import DeliveryError, StorageError, ValidationError
from core.guard import DuplicateGuard
from core.models import Outcome, Partition, WorkItem
from core.payload import validate_payload
from core.ports import NotifierPort, QueuePort

LOGGER = logging.getLogger(__name__)

ScopeFactory = Callable[[str], ItemScope]


class ItemProcessor:
    """Drives one pending item to delivered, quarantined or discarded."""

    def __init__(
        self,
        queue: QueuePort,
        notifier: NotifierPort,
        guard: DuplicateGuard,
        scope_factory: Optional[ScopeFactory] = None,
    ) -> None:
        self._queue = queue
        self._notifier = notifier
        self._guard = guard
        self._scope_factory = scope_factory or ItemScope

    async def process(self, item: WorkItem) -> Outcome:
        """Process one item; never raises for item-level problems."""

        scope = self._scope_factory(item.id)
        log = scope.adapter(LOGGER)
        with scope:
            log.info("Starting processing for item %s", item.id)
            try:
                outcome = await self._process(item, scope)
            except Exception:
                log.exception("Unexpected error processing item %s", item.id)
                outcome = self._quarantine(item.id, scope)
            log.info("Finished processing item %s: %s", item.id, outcome.value)
        return outcome

    async def _process(self, item: WorkItem, scope: ItemScope) -> Outcome:
        log = scope.adapter(LOGGER)

        try:
            validate_payload(item.payload)
        except ValidationError as exc:
            log.error("Item %s failed validation: %s", item.id, exc)
            scope.note("invalid")
            return self._quarantine(item.id, scope)
        scope.note("validated")

        if self._guard.is_finalized(item.id, scope):
            scope.note("local-duplicate")
            if not self._queue.discard(item.id):
                log.error("Duplicate item %s could not be discarded; it stays pending", item.id)
                scope.note("left-pending")
                return Outcome.LEFT_PENDING
            return Outcome.DISCARDED

        if await self._guard.seen_remotely(item, scope):
            scope.note("remote-duplicate")
            self._queue.transition(item.id, Partition.DELIVERED)
            return Outcome.ALREADY_DELIVERED

        log.info("Attempting to deliver item %s", item.id)
        try:
            delivered = await self._notifier.deliver(item)
        except Exception as exc:
            error = exc if isinstance(exc, DeliveryError) else DeliveryError(str(exc))
            log.error("Delivery raised for item %s: %s", item.id, error, exc_info=exc)
            delivered = False

        if not delivered:
            log.warning("Delivery failed for item %s", item.id)
            scope.note("delivery-failed")
            return self._quarantine(item.id, scope)

        scope.note("delivered")
        self._queue.transition(item.id, Partition.DELIVERED)
        log.info("Moved item %s to delivered", item.id)
        return Outcome.DELIVERED

    def _quarantine(self, item_id: str, scope: ItemScope) -> Outcome:
        """Best-effort move to quarantined; leave the item pending if that fails."""

        log = scope.adapter(LOGGER)
        try:
            self._queue.transition(item_id, Partition.QUARANTINED)
        except (StorageError, OSError) as exc:
            log.error("Could not quarantine item %s, leaving it pending: %s", item_id, exc)
            scope.note("left-pending")
            return Outcome.LEFT_PENDING
        log.info("Moved item %s to quarantined", item_id)
        scope.note("quarantined")
        return Outcome.QUARANTINED
