"""Core configuration dataclasses and validation.

Config parsing lives outside the core (settings.py), but these dataclasses
define the shape the core and adapters expect, and collect_config_errors()
checks a raw config + environment before anything is built from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_MAX_ITEMS = 10
MAX_ITEMS_CAP = 100
DEFAULT_HISTORY_WINDOW = 10

NOTIFICATION_METHODS = ("discord", "saved_messages", "bot")

# Environment variables each notification method needs.
_METHOD_ENV_VARS = {
    "discord": ("DISCORD_BOT_TOKEN",),
    "saved_messages": ("API_ID", "API_HASH"),
    "bot": ("BOT_API",),
}


@dataclass(frozen=True)
class FeedConfig:
    """Upstream feed settings."""

    username: str
    max_items: int


@dataclass(frozen=True)
class DuplicateCheckConfig:
    """Remote duplicate check settings."""

    remote_check: bool
    history_window: int


@dataclass(frozen=True)
class NotificationConfig:
    """Rendering settings consumed by notifier adapters."""

    method: str
    title: str
    footer: Optional[str]


def clamp_max_items(raw: Any) -> int:
    """Normalize a requested item count: default when invalid, capped at 100."""

    try:
        value = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_MAX_ITEMS
    if value <= 0:
        return DEFAULT_MAX_ITEMS
    return min(value, MAX_ITEMS_CAP)


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def collect_config_errors(config: Mapping[str, Any], env: Mapping[str, str]) -> list[str]:
    """Return every configuration problem found, in a stable order."""

    errors: list[str] = []

    if _is_blank(env.get("X_BEARER_TOKEN")):
        errors.append("Required environment variable 'X_BEARER_TOKEN' is missing or empty.")

    feed = config.get("feed", {}) or {}
    if _is_blank(env.get("X_USERNAME")) and _is_blank(feed.get("username")):
        errors.append(
            "Required configuration missing: set either environment variable 'X_USERNAME' "
            "or 'feed.username' in config.json."
        )

    notifications = config.get("notifications", {}) or {}
    method = notifications.get("notification_method", "discord")
    if method not in NOTIFICATION_METHODS:
        errors.append(
            f"notifications.notification_method must be one of {', '.join(NOTIFICATION_METHODS)} (got {method!r})."
        )
    else:
        for name in _METHOD_ENV_VARS[method]:
            if _is_blank(env.get(name)):
                errors.append(f"Required environment variable '{name}' is missing or empty for method '{method}'.")
        if method == "discord" and _is_blank(notifications.get("discord_channel_id")):
            errors.append("notifications.discord_channel_id is required for discord notifications.")
        if method == "bot" and _is_blank(notifications.get("bot_chat_id")):
            errors.append("notifications.bot_chat_id is required for bot notifications.")

    enrichment = config.get("enrichment", {}) or {}
    if enrichment.get("enabled", False):
        for name in ("TWITCH_CLIENT_ID", "TWITCH_CLIENT_SECRET"):
            if _is_blank(env.get(name)):
                errors.append(f"Required environment variable '{name}' is missing or empty when enrichment is enabled.")
        if _is_blank(enrichment.get("twitch_username")):
            errors.append("enrichment.twitch_username is required when enrichment is enabled.")

    duplicates = config.get("duplicates", {}) or {}
    window = duplicates.get("history_window", DEFAULT_HISTORY_WINDOW)
    if not isinstance(window, int) or isinstance(window, bool) or not 1 <= window <= 100:
        errors.append("duplicates.history_window must be an integer between 1 and 100.")

    return errors


def format_error_summary(errors: list[str]) -> str:
    """Render validation errors as a readable block, or "" when there are none."""

    if not errors:
        return ""
    lines = ["Configuration validation failed. Please address the following issues:"]
    lines.extend(f"  - {error}" for error in errors)
    return "\n".join(lines)
