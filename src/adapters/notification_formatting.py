"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Any, Optional

DEFAULT_TITLE = "X Relay"
EMBED_COLOR = 0x00FFFF
EMBED_DESCRIPTION_LIMIT = 4096
DISCORD_MESSAGE_LIMIT = 2000
TELEGRAM_MESSAGE_LIMIT = 4096
LONG_TEXT_NOTE = "(Full text sent in separate message below)"


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp, treating naive values as UTC."""

    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def split_text(text: str, max_length: int) -> list[str]:
    """Split text into consecutive chunks of at most max_length characters."""

    if len(text) <= max_length:
        return [text]
    return [text[i : i + max_length] for i in range(0, len(text), max_length)]


def build_discord_embed(
    payload: dict[str, Any],
    title: str = DEFAULT_TITLE,
    footer: Optional[str] = None,
) -> tuple[dict[str, Any], list[str]]:
    """Return (embed, follow-up texts) for a Discord channel message.

    Text longer than the embed description limit is replaced by a note and
    returned as follow-up message chunks instead.
    """

    text = _text(payload, "text")
    follow_ups: list[str] = []
    if len(text) > EMBED_DESCRIPTION_LIMIT:
        description = LONG_TEXT_NOTE
        follow_ups = split_text(text, DISCORD_MESSAGE_LIMIT)
    else:
        description = text

    embed: dict[str, Any] = {
        "title": title,
        "url": _text(payload, "url") or None,
        "description": description,
        "color": EMBED_COLOR,
    }

    author: dict[str, Any] = {"name": _text(payload, "author_name")}
    if _text(payload, "author_profile_url"):
        author["url"] = _text(payload, "author_profile_url")
    if _text(payload, "author_profile_image_url"):
        author["icon_url"] = _text(payload, "author_profile_image_url")
    embed["author"] = author

    thumbnail = _text(payload, "twitch_profile_image_url")
    if thumbnail:
        embed["thumbnail"] = {"url": thumbnail}

    images = payload.get("image_urls") or []
    if images and isinstance(images[0], str) and images[0]:
        embed["image"] = {"url": images[0]}

    timestamp = parse_timestamp(payload.get("created_at")) or datetime.now(timezone.utc)
    embed["timestamp"] = timestamp.isoformat()
    if footer:
        embed["footer"] = {"text": footer}

    return {key: value for key, value in embed.items() if value is not None}, follow_ups


def _format_markdown(payload: dict[str, Any], title: str) -> str:
    """Create the Markdown body used by Telegram user sessions."""

    def escape_md(value: str) -> str:
        for ch in r"*[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [f"**{escape_md(title)}** | {escape_md(_text(payload, 'author_name'))}"]
    timestamp = parse_timestamp(payload.get("created_at"))
    if timestamp:
        lines.append(f"[{timestamp.astimezone().strftime('%H:%M:%S %d-%m-%Y')}]")
    lines.extend(["──────────────", "", escape_md(_text(payload, "text")), ""])
    lines.append(_text(payload, "url"))
    return "\n".join(lines)


def _format_html(payload: dict[str, Any], title: str) -> str:
    """Create the HTML body used by the Bot API adapter."""

    url = html.escape(_text(payload, "url"))
    parts = [f"<b>{html.escape(title)}</b> | {html.escape(_text(payload, 'author_name'))}"]
    timestamp = parse_timestamp(payload.get("created_at"))
    if timestamp:
        parts.append(html.escape(f"[{timestamp.astimezone().strftime('%H:%M:%S %d-%m-%Y')}]"))
    parts.extend(["──────────────", "", html.escape(_text(payload, "text")), ""])
    parts.append(f"<a href=\"{url}\">{url}</a>")
    return "\n".join(parts)


def format_notification(payload: dict[str, Any], mode: str, title: str = DEFAULT_TITLE) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(payload, title)
    if mode == "html":
        return _format_html(payload, title)
    raise ValueError(f"Unsupported notification format: {mode}")


def mentions_reference(text: str, reference: str) -> bool:
    """Return True when text contains reference as a whole link.

    ".../status/12" does not match ".../status/123" or ".../status/12abc".
    """

    if not text or not reference:
        return False
    pattern = re.escape(reference) + r"(?![\w-])"
    return re.search(pattern, text) is not None
