from __future__ import annotations

import asyncio
from pathlib import Path

from adapters.directory_queue import DirectoryQueue
from core.context import ItemScope
from core.errors import TransientLookupError
from core.guard import DuplicateGuard
from core.models import Partition, WorkItem
from fakes import FakeNotifier, make_item


class _BrokenQueue(DirectoryQueue):
    def exists(self, item_id: str, partition: Partition) -> bool:
        raise OSError("permission denied")


def test_local_check_finds_final_records(tmp_path: Path) -> None:
    queue = DirectoryQueue(tmp_path / "queue")
    guard = DuplicateGuard(queue, FakeNotifier())
    queue.enqueue(make_item("7"))
    assert not guard.is_finalized("7", ItemScope("7"))

    queue.transition("7", Partition.QUARANTINED)
    assert guard.is_finalized("7", ItemScope("7"))


def test_local_check_errors_are_skipped(tmp_path: Path) -> None:
    guard = DuplicateGuard(_BrokenQueue(tmp_path / "queue"), FakeNotifier())
    assert guard.is_finalized("7", ItemScope("7")) is False


def test_remote_check_skipped_without_history_access(tmp_path: Path) -> None:
    item = make_item("7")
    notifier = FakeNotifier(history_access=False, recent=[item.reference])
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier)

    assert asyncio.run(guard.seen_remotely(item, ItemScope("7"))) is False
    assert notifier.history_queries == 0


def test_remote_check_matches_recent_reference(tmp_path: Path) -> None:
    item = make_item("7")
    notifier = FakeNotifier(history_access=True, recent=[item.reference])
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier)

    assert asyncio.run(guard.seen_remotely(item, ItemScope("7"))) is True


def test_remote_check_only_sees_the_window(tmp_path: Path) -> None:
    item = make_item("7")
    older = [item.reference] + [f"https://x.com/someone/status/{n}" for n in range(100, 110)]
    notifier = FakeNotifier(history_access=True, recent=older)
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier, history_window=10)

    assert asyncio.run(guard.seen_remotely(item, ItemScope("7"))) is False


def test_remote_check_fails_open(tmp_path: Path) -> None:
    item = make_item("7")
    notifier = FakeNotifier(history_access=True, recent=[item.reference])
    notifier.recent_error = TransientLookupError("rate limited")
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier)

    assert asyncio.run(guard.seen_remotely(item, ItemScope("7"))) is False


def test_history_probe_error_fails_open(tmp_path: Path) -> None:
    notifier = FakeNotifier(history_access=TransientLookupError("timeout"))
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier)

    assert asyncio.run(guard.seen_remotely(make_item("7"), ItemScope("7"))) is False


def test_remote_check_can_be_disabled(tmp_path: Path) -> None:
    item = make_item("7")
    notifier = FakeNotifier(history_access=True, recent=[item.reference])
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier, remote_check=False)

    assert asyncio.run(guard.seen_remotely(item, ItemScope("7"))) is False
    assert notifier.history_queries == 0


def test_item_without_reference_skips_remote_check(tmp_path: Path) -> None:
    notifier = FakeNotifier(history_access=True)
    guard = DuplicateGuard(DirectoryQueue(tmp_path / "queue"), notifier)
    item = WorkItem(id="7", payload={"text": "t", "author_name": "a"})

    assert asyncio.run(guard.seen_remotely(item, ItemScope("7"))) is False
    assert notifier.history_queries == 0
