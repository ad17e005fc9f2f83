"""Main Textual app for inspecting the feedrelay queue."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import ContentSwitcher, Footer, Static, Tab, Tabs

from core.models import Partition

from .constants import ACCENT
from .tabs.partition import PartitionTab


class QueueInspectorApp(App):
    """Read-only view over the four queue partitions."""

    BINDINGS = [
        ("r", "refresh", "Refresh"),
        ("q", "quit", "Quit"),
    ]

    CSS_PATH = "app.tcss"

    def __init__(self, queue, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._queue = queue

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            yield Static(self._title_text(), id="title")
            yield Static(f"queue: {self._queue.root}", classes="subtle")

        with Container(id="tabs-bar"):
            yield Tabs(
                *(Tab(partition.value.capitalize(), id=partition.value) for partition in Partition),
                id="tabs",
            )

        with ContentSwitcher(id="content", initial=Partition.PENDING.value):
            for partition in Partition:
                yield PartitionTab(self._queue, partition, id=partition.value)
        yield Footer()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        if event.tab.id:
            self.query_one("#content", ContentSwitcher).current = event.tab.id

    def action_refresh(self) -> None:
        for tab in self.query(PartitionTab):
            tab.reload()

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("FEED", ACCENT),
            ("RELAY > Queue Inspector", "bold"),
        )
