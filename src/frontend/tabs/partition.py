"""Partition tab for browsing and exporting one queue partition."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from core.errors import StorageError
from core.models import Partition
from core.payload import missing_fields

from ..constants import EXPORTS_DIR


class PartitionTab(Container):
    """Read-only table of the records in one partition."""

    def __init__(self, queue, partition: Partition, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._queue = queue
        self._partition = partition
        self._rows: list[dict[str, Any]] = []
        self._table_ready = False

    def compose(self):
        with Vertical(classes="partition-panel"):
            yield Static(self._partition.value.capitalize(), classes="partition-title")
            yield DataTable(cursor_type="row", classes="partition-table")
            with Horizontal(classes="partition-actions"):
                yield Button("Refresh", classes="refresh-btn")
                yield Button("Export JSON", classes="export-json", variant="success")
                yield Button("Export CSV", classes="export-csv")
            yield Static("", classes="partition-output")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_column("id", key="id", width=20)
        table.add_column("author", key="author_name", width=18)
        table.add_column("created", key="created_at", width=18)
        table.add_column("text", key="text", width=48)
        table.add_column("issues", key="issues", width=20)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self._table_ready = True
        self.reload()

    @on(Button.Pressed, ".refresh-btn")
    def _on_refresh(self) -> None:
        self.reload()

    @on(Button.Pressed, ".export-json")
    def _on_export_json(self) -> None:
        self._export_rows("json")

    @on(Button.Pressed, ".export-csv")
    def _on_export_csv(self) -> None:
        self._export_rows("csv")

    def reload(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one(DataTable)
        table.clear()
        try:
            items = self._queue.list_partition(self._partition)
        except StorageError as exc:
            self._rows = []
            self._set_output(f"queue error: {exc}")
            return

        self._rows = [self._row(item) for item in items]
        for row in self._rows:
            table.add_row(
                row["id"],
                row["author_name"],
                self._format_date_display(row["created_at"]),
                self._clip_text(row["text"]),
                row["issues"],
                key=row["id"],
            )
        self._set_output(f"loaded {len(self._rows)} items from {self._queue.partition_dir(self._partition)}")

    @staticmethod
    def _row(item) -> dict[str, Any]:
        payload = item.payload or {}
        issues = "unreadable" if item.payload is None else ", ".join(missing_fields(payload))
        return {
            "id": item.id,
            "author_name": str(payload.get("author_name") or ""),
            "created_at": str(payload.get("created_at") or ""),
            "text": str(payload.get("text") or ""),
            "url": str(payload.get("url") or ""),
            "issues": issues,
        }

    def _export_rows(self, fmt: str) -> None:
        if not self._rows:
            self._set_output("No items to export.")
            return
        EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = EXPORTS_DIR / f"{self._partition.value}-{timestamp}.{fmt}"
        try:
            if fmt == "json":
                path.write_text(json.dumps(self._rows, indent=2, ensure_ascii=True), encoding="utf-8")
            else:
                with path.open("w", encoding="utf-8", newline="") as handle:
                    writer = csv.DictWriter(handle, fieldnames=list(self._rows[0].keys()))
                    writer.writeheader()
                    writer.writerows(self._rows)
            self._set_output(f"exported {len(self._rows)} items to {path}")
        except OSError as exc:
            self._set_output(f"export failed: {exc.strerror or exc}")

    def _set_output(self, message: str) -> None:
        self.query_one(".partition-output", Static).update(message)

    @staticmethod
    def _clip_text(value: str, limit: int = 64) -> str:
        value = " ".join(value.split())
        if len(value) <= limit:
            return value
        return value[: limit - 3] + "..."

    @staticmethod
    def _format_date_display(value: str) -> str:
        if not value:
            return ""
        return value.replace("T", " ")[:19]
