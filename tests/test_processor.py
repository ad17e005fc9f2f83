from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from adapters.directory_queue import DirectoryQueue
from core.context import ItemScope
from core.errors import DeliveryError, StorageError
from core.guard import DuplicateGuard
from core.models import Outcome, Partition, WorkItem
from core.processor import ItemProcessor
from fakes import FakeNotifier, make_item, make_payload, partitions_of


class _RecordingScopes:
    def __init__(self, **kwargs) -> None:
        self.scopes: list[ItemScope] = []
        self._kwargs = kwargs

    def __call__(self, item_id: str) -> ItemScope:
        scope = ItemScope(item_id, **self._kwargs)
        self.scopes.append(scope)
        return scope


class _StuckQueue(DirectoryQueue):
    """Queue whose moves out of pending fail for the listed targets."""

    def __init__(self, root: Path, failing: tuple) -> None:
        super().__init__(root)
        self._failing = failing

    def transition(self, item_id: str, target: Partition) -> None:
        if target in self._failing:
            raise StorageError(f"cannot move {item_id} to {target.value}")
        super().transition(item_id, target)


class _UndiscardableQueue(DirectoryQueue):
    def discard(self, item_id: str) -> bool:
        return False


def _processor(queue, notifier, scopes=None, remote_check=True) -> ItemProcessor:
    guard = DuplicateGuard(queue, notifier, remote_check=remote_check)
    return ItemProcessor(queue, notifier, guard, scope_factory=scopes)


def test_valid_item_is_delivered(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier()
    item = make_item("42")
    queue.enqueue(item)

    outcome = asyncio.run(_processor(queue, notifier).process(item))

    assert outcome is Outcome.DELIVERED
    assert notifier.delivered == ["42"]
    assert partitions_of(queue, "42") == [Partition.DELIVERED]


def test_missing_required_field_is_quarantined_without_delivery(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier()
    payload = make_payload("42")
    del payload["author_name"]
    item = WorkItem(id="42", payload=payload)
    queue.enqueue(item)

    outcome = asyncio.run(_processor(queue, notifier).process(item))

    assert outcome is Outcome.QUARANTINED
    assert notifier.attempts == []
    assert partitions_of(queue, "42") == [Partition.QUARANTINED]


def test_unreadable_record_is_quarantined(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    queue.ensure_partitions()
    (queue.partition_dir(Partition.PENDING) / "item_42.json").write_text("{broken", encoding="utf-8")
    notifier = FakeNotifier()
    [item] = queue.list_pending()

    outcome = asyncio.run(_processor(queue, notifier).process(item))

    assert outcome is Outcome.QUARANTINED
    assert notifier.attempts == []


def test_already_delivered_item_is_discarded_without_delivery(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier()
    queue.enqueue(make_item("42"))
    queue.transition("42", Partition.DELIVERED)
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier).process(make_item("42")))

    assert outcome is Outcome.DISCARDED
    assert notifier.attempts == []
    assert not queue.exists("42", Partition.PENDING)
    assert queue.exists("42", Partition.DELIVERED)
    assert queue.exists("42", Partition.DISCARDED)


def test_previously_quarantined_item_is_not_retried(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier()
    queue.enqueue(make_item("42"))
    queue.transition("42", Partition.QUARANTINED)
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier).process(make_item("42")))

    assert outcome is Outcome.DISCARDED
    assert notifier.attempts == []


def test_item_already_in_channel_is_marked_delivered(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    item = make_item("42")
    notifier = FakeNotifier(history_access=True, recent=[item.reference])
    queue.enqueue(item)

    outcome = asyncio.run(_processor(queue, notifier).process(item))

    assert outcome is Outcome.ALREADY_DELIVERED
    assert notifier.attempts == []
    assert partitions_of(queue, "42") == [Partition.DELIVERED]


def test_rejected_delivery_is_quarantined(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier(results={"42": False})
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier).process(make_item("42")))

    assert outcome is Outcome.QUARANTINED
    assert partitions_of(queue, "42") == [Partition.QUARANTINED]


def test_delivery_exception_is_quarantined(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier(raises={"42": DeliveryError("channel gone")})
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier).process(make_item("42")))

    assert outcome is Outcome.QUARANTINED
    assert partitions_of(queue, "42") == [Partition.QUARANTINED]


def test_failed_final_move_falls_back_to_quarantine(tmp_path: Path) -> None:
    queue = _StuckQueue(tmp_path / "queue", failing=(Partition.DELIVERED,))
    notifier = FakeNotifier()
    scopes = _RecordingScopes()
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier, scopes).process(make_item("42")))

    assert outcome is Outcome.QUARANTINED
    assert partitions_of(queue, "42") == [Partition.QUARANTINED]
    assert scopes.scopes[0].notes == ["validated", "delivered", "quarantined"]


def test_item_stays_pending_when_quarantine_fails(tmp_path: Path) -> None:
    queue = _StuckQueue(tmp_path / "queue", failing=(Partition.QUARANTINED,))
    notifier = FakeNotifier(results={"42": False})
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier).process(make_item("42")))

    assert outcome is Outcome.LEFT_PENDING
    assert partitions_of(queue, "42") == [Partition.PENDING]


def test_scopes_are_isolated_and_closed(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier(raises={"1": RuntimeError("boom")})
    scopes = _RecordingScopes()
    processor = _processor(queue, notifier, scopes)
    for item_id in ("1", "2"):
        queue.enqueue(make_item(item_id))

    async def run() -> list[Outcome]:
        return [await processor.process(item) for item in queue.list_pending()]

    outcomes = asyncio.run(run())

    assert outcomes == [Outcome.QUARANTINED, Outcome.DELIVERED]
    assert [scope.item_id for scope in scopes.scopes] == ["1", "2"]
    assert scopes.scopes[0].notes == ["validated", "delivery-failed", "quarantined"]
    assert scopes.scopes[1].notes == ["validated", "delivered"]
    assert not any(scope.active for scope in scopes.scopes)


def test_item_log_file_holds_only_its_own_records(tmp_path: Path, caplog) -> None:
    caplog.set_level(logging.INFO)
    queue = DirectoryQueue(tmp_path / "queue")
    notifier = FakeNotifier()
    log_dir = tmp_path / "logs"
    scopes = _RecordingScopes(log_dir=log_dir)
    processor = _processor(queue, notifier, scopes)
    for item_id in ("1", "2"):
        queue.enqueue(make_item(item_id))

    async def run() -> None:
        for item in queue.list_pending():
            await processor.process(item)

    asyncio.run(run())

    first = (log_dir / "item_1.log").read_text(encoding="utf-8")
    second = (log_dir / "item_2.log").read_text(encoding="utf-8")
    assert "item 1" in first and "item 2" not in first
    assert "Moved item_1.json to delivered" in first and "item_2.json" not in first
    assert "item 2" in second and "item 1" not in second
    root_handlers = logging.getLogger().handlers
    assert not any(isinstance(handler, logging.FileHandler) for handler in root_handlers)


def test_duplicate_that_cannot_be_discarded_stays_pending(tmp_path: Path) -> None:
    queue = _UndiscardableQueue(tmp_path / "queue")
    notifier = FakeNotifier()
    scopes = _RecordingScopes()
    queue.enqueue(make_item("42"))
    queue.transition("42", Partition.DELIVERED)
    queue.enqueue(make_item("42"))

    outcome = asyncio.run(_processor(queue, notifier, scopes).process(make_item("42")))

    assert outcome is Outcome.LEFT_PENDING
    assert notifier.attempts == []
    assert queue.exists("42", Partition.PENDING)
    assert scopes.scopes[0].notes == ["validated", "local-duplicate", "left-pending"]
