from __future__ import annotations

from typing import Any, Optional

from core.errors import FeedError
from core.models import Partition, WorkItem


def make_payload(item_id: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": item_id,
        "text": f"post number {item_id}",
        "url": f"https://x.com/someone/status/{item_id}",
        "image_urls": [],
        "created_at": "2024-01-01T12:00:00Z",
        "author_name": "Someone",
        "author_profile_url": "https://x.com/someone",
        "author_profile_image_url": None,
    }
    payload.update(overrides)
    return payload


def make_item(item_id: str, **overrides: Any) -> WorkItem:
    return WorkItem(id=item_id, payload=make_payload(item_id, **overrides))


class FakeNotifier:
    def __init__(
        self,
        *,
        results: Optional[dict[str, bool]] = None,
        raises: Optional[dict[str, Exception]] = None,
        history_access: Any = False,
        recent: Optional[list[str]] = None,
    ) -> None:
        self.attempts: list[str] = []
        self.delivered: list[str] = []
        self.history_queries = 0
        self.history_access = history_access
        self.recent: list[str] = list(recent or [])
        self.recent_error: Optional[Exception] = None
        self._results = results or {}
        self._raises = raises or {}

    async def deliver(self, item: WorkItem) -> bool:
        self.attempts.append(item.id)
        if item.id in self._raises:
            raise self._raises[item.id]
        ok = self._results.get(item.id, True)
        if ok:
            self.delivered.append(item.id)
            self.recent.append(item.reference or "")
        return ok

    async def has_history_access(self) -> bool:
        if isinstance(self.history_access, Exception):
            raise self.history_access
        return self.history_access

    async def recently_contains(self, reference: str, window: int) -> bool:
        self.history_queries += 1
        if self.recent_error is not None:
            raise self.recent_error
        return reference in self.recent[-window:]


class FakeFeed:
    def __init__(self, batches: list[Any]) -> None:
        self._batches = list(batches)
        self.calls: list[tuple[Optional[str], int]] = []

    def fetch_since(self, cursor: Optional[str], limit: int) -> list[WorkItem]:
        self.calls.append((cursor, limit))
        batch = self._batches.pop(0) if self._batches else []
        if isinstance(batch, Exception):
            raise batch
        return batch


class FailingFeed(FakeFeed):
    def __init__(self) -> None:
        super().__init__([FeedError("timeline unavailable")])


class FakeEnrichment:
    def __init__(self, result: Optional[dict[str, Any]]) -> None:
        self.result = result
        self.calls = 0

    def lookup(self) -> Optional[dict[str, Any]]:
        self.calls += 1
        return self.result


def partitions_of(queue, item_id: str) -> list[Partition]:
    return [partition for partition in Partition if queue.exists(item_id, partition)]
