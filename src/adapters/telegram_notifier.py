"""Telegram user-session notification adapter.

Sends items as Markdown messages through a Telethon client, by default to the
account's Saved Messages. A user session can read the chat it writes to, so
the remote duplicate check scans the chat's most recent messages.
"""

from __future__ import annotations

import logging

from adapters.notification_formatting import (
    DEFAULT_TITLE,
    TELEGRAM_MESSAGE_LIMIT,
    format_notification,
    mentions_reference,
    split_text,
)
from core.errors import TransientLookupError
from core.models import WorkItem

LOGGER = logging.getLogger(__name__)


class TelegramChatNotifier:
    """Notifier adapter that sends messages to a chat via a user session."""

    def __init__(self, client, target: str = "me", title: str = DEFAULT_TITLE) -> None:
        self._client = client
        self._target = target
        self._title = title

    async def deliver(self, item: WorkItem) -> bool:
        """Send the formatted message; Telethon raises on failure."""

        message = format_notification(item.payload or {}, mode="markdown", title=self._title)
        for chunk in split_text(message, TELEGRAM_MESSAGE_LIMIT):
            await self._client.send_message(self._target, chunk, parse_mode="md", link_preview=False)
        LOGGER.info("Sent item %s to Telegram chat %s", item.id, self._target)
        return True

    async def has_history_access(self) -> bool:
        try:
            if not await self._client.is_user_authorized():
                return False
            await self._client.get_input_entity(self._target)
        except Exception as exc:
            raise TransientLookupError(f"cannot resolve chat {self._target}: {exc}") from exc
        return True

    async def recently_contains(self, reference: str, window: int) -> bool:
        try:
            async for message in self._client.iter_messages(self._target, limit=window):
                if mentions_reference(message.raw_text or "", reference):
                    return True
        except Exception as exc:
            raise TransientLookupError(f"could not read recent messages of {self._target}: {exc}") from exc
        return False
