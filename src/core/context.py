"""Per-item diagnostic scope.

Every item processed by the pipeline gets its own ItemScope. The scope is
passed explicitly to whatever works on the item, carries a LoggerAdapter that
tags records with the item id, keeps an ordered list of step notes, and can
mirror the item's records into a dedicated log file while it is open.

The file handler sits on the root logger. It accepts records tagged with the
item id and, while the scope is open, untagged records emitted in the same
context, such as queue moves logged by the adapters.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Optional

from core.ids import RECORD_PREFIX

# Records from every core module propagate through this logger.
CORE_LOGGER_NAME = "core"

_CURRENT_ITEM: ContextVar[Optional[str]] = ContextVar("current_item", default=None)


class _ItemFilter(logging.Filter):
    def __init__(self, item_id: str) -> None:
        super().__init__()
        self._item_id = item_id

    def filter(self, record: logging.LogRecord) -> bool:
        item_id = getattr(record, "item_id", None) or _CURRENT_ITEM.get()
        return item_id == self._item_id


class ItemScope:
    """Diagnostic context for one item, open for the duration of processing."""

    def __init__(
        self,
        item_id: str,
        log_dir: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.item_id = item_id
        self.notes: list[str] = []
        self.active = False
        self._log_dir = log_dir
        self._base_logger = logger or logging.getLogger(CORE_LOGGER_NAME)
        self._handler: Optional[logging.Handler] = None
        self._token: Optional[Token] = None
        self.log = logging.LoggerAdapter(self._base_logger, {"item_id": item_id})

    def __enter__(self) -> "ItemScope":
        self.active = True
        self._token = _CURRENT_ITEM.set(self.item_id)
        if self._log_dir is not None:
            self._attach_file_handler(self._log_dir)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def adapter(self, logger: logging.Logger) -> logging.LoggerAdapter:
        """Return an adapter that tags the given module logger with this item."""

        return logging.LoggerAdapter(logger, {"item_id": self.item_id})

    def note(self, step: str) -> None:
        """Record a processing step for this item."""

        self.notes.append(step)

    def close(self) -> None:
        """Detach the per-item handler and mark the scope closed."""

        if self._handler is not None:
            logging.getLogger().removeHandler(self._handler)
            self._handler.close()
            self._handler = None
        if self._token is not None:
            _CURRENT_ITEM.reset(self._token)
            self._token = None
        self.active = False

    @property
    def log_path(self) -> Optional[Path]:
        if self._log_dir is None:
            return None
        return self._log_dir / f"{RECORD_PREFIX}{self.item_id}.log"

    def _attach_file_handler(self, log_dir: Path) -> None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(self.log_path, encoding="utf-8")
        except OSError:
            # The item is still processed, just without its own log file.
            self._base_logger.warning("Could not open item log for %s in %s", self.item_id, log_dir)
            return
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler.addFilter(_ItemFilter(self.item_id))
        logging.getLogger().addHandler(handler)
        self._handler = handler
