"""Static configuration for feedrelay.

All user-editable settings (feed, duplicate checks, notifications, logging)
live in a single JSON file; secrets stay in the environment (.env).
"""

import json
import os

from dotenv import load_dotenv

from core.config import (
    DEFAULT_HISTORY_WINDOW,
    DuplicateCheckConfig,
    FeedConfig,
    NotificationConfig,
    clamp_max_items,
)

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# FEEDRELAY_CONFIG points at an alternative config.json, e.g. one per deployment.
CONFIG_PATH = os.getenv("FEEDRELAY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for validation and modules that need structured access.
CONFIG = _CONFIG

# Queue partitions, the watermark file and per-item logs live under DATA_DIR.
DATA_DIR = _resolve_path(_CONFIG.get("data_dir", "data"))

# Feed: X_USERNAME in the environment wins over feed.username.
_feed = _CONFIG.get("feed", {})
FEED = FeedConfig(
    username=(os.getenv("X_USERNAME") or _feed.get("username") or "").strip(),
    max_items=clamp_max_items(_feed.get("max_items", 10)),
)

# Optional Twitch enrichment for message thumbnails.
_enrichment = _CONFIG.get("enrichment", {})
ENRICHMENT_ENABLED = bool(_enrichment.get("enabled", False))
TWITCH_USERNAME = _enrichment.get("twitch_username")

# Remote duplicate check against the channel's most recent messages.
# history_window stays raw here; collect_config_errors() rejects non-integers before use.
_duplicates = _CONFIG.get("duplicates", {})
DUPLICATES = DuplicateCheckConfig(
    remote_check=bool(_duplicates.get("remote_check", True)),
    history_window=_duplicates.get("history_window", DEFAULT_HISTORY_WINDOW),
)

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATIONS = NotificationConfig(
    method=_notifications.get("notification_method", "discord"),
    title=_notifications.get("title", "X Relay"),
    footer=_notifications.get("footer"),
)
DISCORD_CHANNEL_ID = _notifications.get("discord_channel_id")
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")
# Target chat for saved_messages; "me" is the account's Saved Messages.
TARGET_CHAT = _notifications.get("target_chat", "me")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
_per_item = LOGGING.get("per_item", {})
PER_ITEM_LOG_DIR = (
    _resolve_path(_per_item.get("dir", os.path.join("logs", "items"))) if _per_item.get("enabled", False) else None
)
