"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so notifications can be routed via a bot chat.
The Bot API cannot read chat history, so this channel never takes part in the
remote duplicate check.
"""

from __future__ import annotations

import logging

from adapters.http_json import HttpError, request_json
from adapters.notification_formatting import DEFAULT_TITLE, TELEGRAM_MESSAGE_LIMIT, format_notification, split_text
from core.errors import DeliveryError
from core.models import WorkItem

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, title: str = DEFAULT_TITLE) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._title = title

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def deliver(self, item: WorkItem) -> bool:
        """Send the formatted notification via the Bot API."""

        message = format_notification(item.payload or {}, mode="html", title=self._title)
        for chunk in split_text(message, TELEGRAM_MESSAGE_LIMIT):
            payload = {
                "chat_id": self._chat_id,
                "text": chunk,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            }
            try:
                body = request_json("POST", self._endpoint(), payload=payload)
            except HttpError as e:
                raise DeliveryError(f"Bot API error: {e}") from e
            if not (body or {}).get("ok", False):
                LOGGER.error("Bot API refused item %s: %s", item.id, (body or {}).get("description"))
                return False
        LOGGER.info("Sent item %s to bot chat %s", item.id, self._chat_id)
        return True

    async def has_history_access(self) -> bool:
        return False

    async def recently_contains(self, reference: str, window: int) -> bool:
        return False
