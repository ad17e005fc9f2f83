from __future__ import annotations

import os
from pathlib import Path

import pytest

import adapters.directory_queue as directory_queue
from adapters.directory_queue import DirectoryQueue
from core.errors import StorageError, ValidationError
from core.models import Partition, WorkItem
from fakes import make_item, partitions_of


def _queue(tmp_path: Path) -> DirectoryQueue:
    return DirectoryQueue(tmp_path / "queue")


def test_enqueue_creates_partitions_and_record(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))

    for partition in Partition:
        assert queue.partition_dir(partition).is_dir()
    assert (queue.partition_dir(Partition.PENDING) / "item_42.json").is_file()
    assert partitions_of(queue, "42") == [Partition.PENDING]


def test_enqueue_overwrites_pending_copy(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42", text="first"))
    queue.enqueue(make_item("42", text="second"))

    pending = queue.list_pending()
    assert [item.id for item in pending] == ["42"]
    assert pending[0].payload["text"] == "second"


def test_enqueue_rejects_invalid_id(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    with pytest.raises(ValidationError):
        queue.enqueue(WorkItem(id="../evil", payload={}))


def test_list_pending_orders_numerically_and_skips_foreign_files(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    for item_id in ("5", "12", "3"):
        queue.enqueue(make_item(item_id))
    pending_dir = queue.partition_dir(Partition.PENDING)
    (pending_dir / "README.txt").write_text("not a record", encoding="utf-8")
    (pending_dir / ".item_7.json.abc.tmp").write_text("{}", encoding="utf-8")

    assert [item.id for item in queue.list_pending()] == ["3", "5", "12"]


def test_unreadable_record_is_listed_without_payload(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.ensure_partitions()
    (queue.partition_dir(Partition.PENDING) / "item_9.json").write_text("{not json", encoding="utf-8")

    [item] = queue.list_pending()
    assert item.id == "9"
    assert item.payload is None


def test_list_pending_on_missing_root_is_empty(tmp_path: Path) -> None:
    assert _queue(tmp_path).list_pending() == []


def test_transition_moves_record(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))

    queue.transition("42", Partition.DELIVERED)

    assert partitions_of(queue, "42") == [Partition.DELIVERED]
    [delivered] = queue.list_partition(Partition.DELIVERED)
    assert delivered.payload["url"].endswith("/42")


def test_transition_of_missing_item_raises(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.ensure_partitions()
    with pytest.raises(StorageError):
        queue.transition("42", Partition.QUARANTINED)


def test_transition_only_targets_final_partitions(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))
    with pytest.raises(ValueError):
        queue.transition("42", Partition.DISCARDED)
    with pytest.raises(ValueError):
        queue.transition("42", Partition.PENDING)


def test_transition_falls_back_to_copy_when_rename_fails(tmp_path: Path, monkeypatch) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))
    real_replace = os.replace

    def replace(src, dst):
        if Path(src).parent.name == "pending":
            raise OSError("cross-device link")
        return real_replace(src, dst)

    monkeypatch.setattr(directory_queue.os, "replace", replace)
    queue.transition("42", Partition.QUARANTINED)

    assert partitions_of(queue, "42") == [Partition.QUARANTINED]


def test_discard_moves_to_discarded(tmp_path: Path) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))

    assert queue.discard("42") is True
    assert partitions_of(queue, "42") == [Partition.DISCARDED]


def test_discard_deletes_when_move_fails(tmp_path: Path, monkeypatch) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))

    def replace(src, dst):
        raise OSError("read-only bin")

    monkeypatch.setattr(directory_queue.os, "replace", replace)

    assert queue.discard("42") is True
    assert partitions_of(queue, "42") == []


def test_discard_reports_failure_when_record_cannot_be_removed(tmp_path: Path, monkeypatch) -> None:
    queue = _queue(tmp_path)
    queue.enqueue(make_item("42"))

    def replace(src, dst):
        raise OSError("read-only bin")

    def unlink(self, missing_ok=False):
        raise PermissionError("read-only pending")

    monkeypatch.setattr(directory_queue.os, "replace", replace)
    monkeypatch.setattr(Path, "unlink", unlink)

    assert queue.discard("42") is False
    assert queue.exists("42", Partition.PENDING)


def test_ensure_partitions_failure_is_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "queue"
    blocker.write_text("a file where the queue should be", encoding="utf-8")
    with pytest.raises(StorageError):
        DirectoryQueue(blocker).ensure_partitions()
