"""Directory queue adapter.

Implements the core QueuePort on the filesystem. Each lifecycle state is a
directory under the queue root and each item is one JSON record named after
its id:

- pending/: fetched items waiting for delivery
- delivered/: items sent (or found already sent) to the channel
- quarantined/: malformed items and failed deliveries, kept for review
- discarded/: re-fetched copies of items that were already final

Moves between directories use os.replace, which is atomic on one filesystem,
so a crash leaves a record in exactly one place.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from adapters.fs_atomic import write_atomic, write_text_atomic
from core.errors import StorageError, ValidationError
from core.ids import id_from_record_name, id_sort_key, is_valid_id, record_name
from core.models import Partition, WorkItem

LOGGER = logging.getLogger(__name__)

QUEUE_DIR = "queue"

_TRANSITION_TARGETS = (Partition.DELIVERED, Partition.QUARANTINED)


class DirectoryQueue:
    """Four-partition work queue rooted at a single directory."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._ready = False

    @property
    def root(self) -> Path:
        return self._root

    def partition_dir(self, partition: Partition) -> Path:
        return self._root / partition.value

    def _record_path(self, partition: Partition, item_id: str) -> Path:
        return self.partition_dir(partition) / record_name(item_id)

    def ensure_partitions(self) -> None:
        """Create every partition directory; failure here is fatal."""

        try:
            for partition in Partition:
                self.partition_dir(partition).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"could not create queue partitions under {self._root}: {exc}") from exc
        self._ready = True

    def enqueue(self, item: WorkItem) -> None:
        """Write the item into pending, replacing an earlier pending copy."""

        if not is_valid_id(item.id):
            raise ValidationError(f"invalid item id {item.id!r}")
        if not self._ready:
            self.ensure_partitions()

        path = self._record_path(Partition.PENDING, item.id)
        try:
            write_text_atomic(path, json.dumps(item.to_record(), indent=2, ensure_ascii=False))
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"could not write {path.name}: {exc}") from exc

    def list_pending(self) -> list[WorkItem]:
        """Return pending items ordered by numeric id."""

        return self.list_partition(Partition.PENDING)

    def list_partition(self, partition: Partition) -> list[WorkItem]:
        """Return the records of one partition ordered by numeric id."""

        directory = self.partition_dir(partition)
        if not directory.exists():
            return []
        try:
            entries = list(directory.iterdir())
        except OSError as exc:
            raise StorageError(f"could not list {directory}: {exc}") from exc

        found: list[tuple[str, Path]] = []
        for entry in entries:
            item_id = id_from_record_name(entry.name)
            if item_id is None or not entry.is_file():
                LOGGER.debug("Skipping non-record entry %s", entry.name)
                continue
            found.append((item_id, entry))

        found.sort(key=lambda pair: id_sort_key(pair[0]))
        return [self._load(item_id, path) for item_id, path in found]

    def exists(self, item_id: str, partition: Partition) -> bool:
        return self._record_path(partition, item_id).exists()

    def transition(self, item_id: str, target: Partition) -> None:
        """Move a pending record into delivered or quarantined."""

        if target not in _TRANSITION_TARGETS:
            raise ValueError(f"pending items can only move to delivered or quarantined, not {target.value}")

        source = self._record_path(Partition.PENDING, item_id)
        destination = self._record_path(target, item_id)
        try:
            os.replace(source, destination)
        except FileNotFoundError as exc:
            if not source.exists():
                raise StorageError(f"item {item_id} is not pending") from exc
            raise StorageError(f"could not move item {item_id} to {target.value}: {exc}") from exc
        except OSError as exc:
            LOGGER.warning("Rename of %s into %s failed (%s); copying instead", source.name, target.value, exc)
            self._copy_then_remove(source, destination)
        LOGGER.info("Moved %s to %s", source.name, target.value)

    def discard(self, item_id: str) -> bool:
        """Remove a confirmed duplicate from pending.

        The record is moved to discarded; if that fails it is deleted. Returns
        False only when the record is still in pending afterwards.
        """

        source = self._record_path(Partition.PENDING, item_id)
        destination = self._record_path(Partition.DISCARDED, item_id)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, destination)
            LOGGER.info("Moved duplicate %s to discarded", source.name)
            return True
        except FileNotFoundError:
            if not source.exists():
                LOGGER.warning("Duplicate %s is no longer pending", source.name)
                return True
            LOGGER.error("Failed to move duplicate %s to discarded; attempting deletion", source)
        except OSError as exc:
            LOGGER.error("Failed to move duplicate %s to discarded (%s); attempting deletion", source, exc)

        try:
            source.unlink()
        except FileNotFoundError:
            return True
        except OSError as exc:
            LOGGER.critical("Failed to delete duplicate %s after move failed: %s", source, exc)
            return False
        LOGGER.warning("Deleted duplicate %s after failing to move it to discarded", source)
        return True

    def _copy_then_remove(self, source: Path, destination: Path) -> None:
        # The target is complete before the source goes away, so an
        # interruption leaves the record in at least one place.
        try:
            write_atomic(destination, source.read_bytes())
        except OSError as exc:
            raise StorageError(f"could not copy {source.name} to {destination.parent.name}: {exc}") from exc
        try:
            source.unlink()
        except OSError as exc:
            LOGGER.error(
                "Copied %s to %s but could not remove the pending copy: %s",
                source.name,
                destination.parent.name,
                exc,
            )

    def _load(self, item_id: str, path: Path) -> WorkItem:
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Could not read record %s: %s", path.name, exc)
            return WorkItem(id=item_id, payload=None)

        if not isinstance(record, dict) or not isinstance(record.get("payload"), dict):
            LOGGER.warning("Record %s has no payload object", path.name)
            return WorkItem(id=item_id, payload=None)
        if record.get("id") not in (None, item_id):
            LOGGER.warning("Record %s carries id %r; using the file name", path.name, record.get("id"))
        return WorkItem(id=item_id, payload=record["payload"])
