"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for queue, cursor, feed, enrichment and
notification adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from core.models import Partition, WorkItem


class QueuePort(Protocol):
    """Durable per-item state required by the core pipeline."""

    def ensure_partitions(self) -> None:
        ...

    def enqueue(self, item: WorkItem) -> None:
        ...

    def list_pending(self) -> list[WorkItem]:
        ...

    def exists(self, item_id: str, partition: Partition) -> bool:
        ...

    def transition(self, item_id: str, target: Partition) -> None:
        ...

    def discard(self, item_id: str) -> bool:
        ...


class WatermarkPort(Protocol):
    """Single monotonic cursor bounding the next fetch window."""

    def read(self) -> Optional[str]:
        ...

    def write(self, item_id: str) -> bool:
        ...


class FeedPort(Protocol):
    """Upstream feed returning items newer than a cursor, ascending by id."""

    def fetch_since(self, cursor: Optional[str], limit: int) -> Sequence[WorkItem]:
        ...


class EnrichmentPort(Protocol):
    """Auxiliary metadata merged into every item of a cycle."""

    def lookup(self) -> Optional[dict[str, Any]]:
        ...


class NotifierPort(Protocol):
    """Delivery channel operations required by the core pipeline."""

    async def deliver(self, item: WorkItem) -> bool:
        ...

    async def has_history_access(self) -> bool:
        ...

    async def recently_contains(self, reference: str, window: int) -> bool:
        ...
