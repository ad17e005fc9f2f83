"""Discord notification adapter.

Posts an embed per item to a Discord channel through the REST API with a bot
token, and reads the channel's recent messages for the remote duplicate
check. Reading history needs the READ_MESSAGE_HISTORY permission; without it
the adapter reports no history access and the pipeline delivers anyway.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from adapters.http_json import HttpError, build_url, request_json
from adapters.notification_formatting import DEFAULT_TITLE, build_discord_embed, mentions_reference
from core.errors import DeliveryError, TransientLookupError
from core.models import WorkItem

LOGGER = logging.getLogger(__name__)

API_BASE = "https://discord.com/api/v10"
_FORBIDDEN = (401, 403)


class DiscordChannelNotifier:
    """Notifier adapter that sends embeds to a Discord text channel."""

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        title: str = DEFAULT_TITLE,
        footer: Optional[str] = None,
        timeout: float = 10,
    ) -> None:
        if not bot_token or not channel_id:
            raise ValueError("Discord bot token and channel id must be provided")
        self._bot_token = bot_token
        self._channel_id = str(channel_id)
        self._title = title
        self._footer = footer
        self._timeout = timeout
        self._history_access: Optional[bool] = None

    def _messages_url(self) -> str:
        return f"{API_BASE}/channels/{self._channel_id}/messages"

    def _call(self, method: str, url: str, payload: Optional[dict[str, Any]] = None) -> Any:
        headers = {"Authorization": f"Bot {self._bot_token}"}
        return request_json(method, url, headers=headers, payload=payload, timeout=self._timeout)

    async def deliver(self, item: WorkItem) -> bool:
        """Send the embed, then any follow-up text chunks for long posts."""

        embed, follow_ups = build_discord_embed(item.payload or {}, title=self._title, footer=self._footer)
        try:
            self._call("POST", self._messages_url(), {"embeds": [embed]})
        except HttpError as e:
            if e.status in _FORBIDDEN:
                LOGGER.error("Discord bot lacks permission to post in channel %s: %s", self._channel_id, e)
                return False
            raise DeliveryError(f"embed for item {item.id} was rejected: {e}") from e
        LOGGER.info("Sent embed for item %s to Discord channel %s", item.id, self._channel_id)

        # The embed already landed, so a failed chunk is logged rather than
        # turning the whole delivery into a failure.
        for chunk in follow_ups:
            try:
                self._call("POST", self._messages_url(), {"content": chunk})
            except HttpError as e:
                LOGGER.error("Failed to send text chunk for item %s to channel %s: %s", item.id, self._channel_id, e)
        return True

    async def has_history_access(self) -> bool:
        """Probe once whether the bot may read the channel history."""

        if self._history_access is None:
            try:
                self._call("GET", build_url(self._messages_url(), {"limit": 1}))
            except HttpError as e:
                if e.status not in _FORBIDDEN:
                    raise TransientLookupError(f"history probe failed: {e}") from e
                LOGGER.warning("Bot cannot read history of channel %s; remote duplicate check disabled", self._channel_id)
                self._history_access = False
            else:
                self._history_access = True
        return self._history_access

    async def recently_contains(self, reference: str, window: int) -> bool:
        """Return True if reference shows up in the last window messages."""

        try:
            messages = self._call("GET", build_url(self._messages_url(), {"limit": window})) or []
        except HttpError as e:
            raise TransientLookupError(f"could not read recent messages: {e}") from e
        return any(_mentions(message, reference) for message in messages)


def _mentions(message: dict[str, Any], reference: str) -> bool:
    # Our own embeds carry the permalink as their url; plain content covers manual posts.
    for embed in message.get("embeds") or []:
        if embed.get("url") == reference:
            return True
    return mentions_reference(message.get("content") or "", reference)
