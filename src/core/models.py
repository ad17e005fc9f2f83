"""Core domain models.

These types are shared across the core and adapters to avoid tight coupling
to any feed- or channel-specific types.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Partition(str, Enum):
    """Lifecycle state of a work item; also the name of its queue location."""

    PENDING = "pending"
    DELIVERED = "delivered"
    QUARANTINED = "quarantined"
    DISCARDED = "discarded"

    @property
    def is_terminal(self) -> bool:
        return self is not Partition.PENDING


class Outcome(str, Enum):
    """Result of processing one pending item."""

    DELIVERED = "delivered"
    ALREADY_DELIVERED = "already_delivered"
    DISCARDED = "discarded"
    QUARANTINED = "quarantined"
    LEFT_PENDING = "left_pending"


@dataclass(frozen=True)
class WorkItem:
    """One fetched unit of content awaiting or having completed delivery.

    The payload is opaque to the pipeline apart from validation and the
    canonical reference used by the remote duplicate check. A payload of
    None means the persisted record could not be read back.
    """

    id: str
    payload: Optional[dict[str, Any]]

    @property
    def reference(self) -> Optional[str]:
        if not self.payload:
            return None
        url = self.payload.get("url")
        return url if isinstance(url, str) and url else None

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "payload": self.payload}

    def with_fields(self, extra: dict[str, Any]) -> "WorkItem":
        """Return a copy whose payload also carries the extra fields."""

        payload = dict(self.payload or {})
        payload.update(extra)
        return WorkItem(id=self.id, payload=payload)


@dataclass
class ScanSummary:
    """Outcome counts for one batch scan."""

    outcomes: Counter = field(default_factory=Counter)

    @property
    def processed(self) -> int:
        return sum(self.outcomes.values())

    def record(self, outcome: Outcome) -> None:
        self.outcomes[outcome] += 1

    def count(self, outcome: Outcome) -> int:
        return self.outcomes[outcome]


@dataclass
class CycleReport:
    """What one fetch-then-scan cycle did."""

    cursor: Optional[str]
    fetched: int = 0
    written: int = 0
    watermark: Optional[str] = None
    scan: ScanSummary = field(default_factory=ScanSummary)
