"""Application entry point for the feedrelay relay."""

from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.directory_queue import QUEUE_DIR, DirectoryQueue
from adapters.discord_notifier import DiscordChannelNotifier
from adapters.file_watermark import WATERMARK_FILE, FileWatermarkStore
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramChatNotifier
from adapters.twitch_lookup import TwitchProfileLookup
from adapters.x_feed import XTimelineFeed
from client import build_client
from core.config import clamp_max_items, collect_config_errors, format_error_summary
from core.context import ItemScope
from core.cycle import RelayCycle
from core.errors import StorageError
from core.guard import DuplicateGuard
from core.processor import ItemProcessor
from core.scanner import BatchScanner
from core.writer import ItemWriter
from get_session import authorize

NAME = "FEEDRELAY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    names = redact_cfg.get(
        "patterns",
        ["X_BEARER_TOKEN", "DISCORD_BOT_TOKEN", "BOT_API", "API_HASH", "TWITCH_CLIENT_SECRET"],
    )
    values = [os.getenv(name) for name in names]
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/feedrelay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_notifier(client):
    """Select the delivery adapter; the core never sees which one it is."""

    method = settings.NOTIFICATIONS.method
    if method == "discord":
        return DiscordChannelNotifier(
            bot_token=os.environ["DISCORD_BOT_TOKEN"],
            channel_id=str(settings.DISCORD_CHANNEL_ID),
            title=settings.NOTIFICATIONS.title,
            footer=settings.NOTIFICATIONS.footer,
        )
    if method == "bot":
        return TelegramBotNotifier(
            bot_token=os.environ["BOT_API"],
            chat_id=str(settings.BOT_CHAT_ID),
            title=settings.NOTIFICATIONS.title,
        )
    if method == "saved_messages":
        return TelegramChatNotifier(client, target=settings.TARGET_CHAT, title=settings.NOTIFICATIONS.title)
    raise RuntimeError("notification_method must be 'discord', 'saved_messages' or 'bot'")


def _build_cycle(data_dir: Path, limit: int, notifier) -> RelayCycle:
    queue = DirectoryQueue(data_dir / QUEUE_DIR)
    # Fatal when the partitions cannot be created at all.
    queue.ensure_partitions()

    enrichment = None
    if settings.ENRICHMENT_ENABLED:
        enrichment = TwitchProfileLookup(
            client_id=os.environ["TWITCH_CLIENT_ID"],
            client_secret=os.environ["TWITCH_CLIENT_SECRET"],
            username=settings.TWITCH_USERNAME or "",
        )

    scope_factory = ItemScope
    if settings.PER_ITEM_LOG_DIR:
        scope_factory = functools.partial(ItemScope, log_dir=Path(settings.PER_ITEM_LOG_DIR))

    guard = DuplicateGuard(
        queue,
        notifier,
        remote_check=settings.DUPLICATES.remote_check,
        history_window=settings.DUPLICATES.history_window,
    )
    processor = ItemProcessor(queue, notifier, guard, scope_factory=scope_factory)
    return RelayCycle(
        feed=XTimelineFeed(os.environ["X_BEARER_TOKEN"], settings.FEED.username),
        watermark=FileWatermarkStore(data_dir / WATERMARK_FILE),
        writer=ItemWriter(queue),
        scanner=BatchScanner(queue, processor),
        enrichment=enrichment,
        limit=limit,
    )


async def _run_cycle(data_dir: Path, limit: int) -> None:
    logger = logging.getLogger(__name__)
    client = None
    if settings.NOTIFICATIONS.method == "saved_messages":
        client = build_client()
        await client.connect()
        if not await client.is_user_authorized():
            await client.disconnect()
            raise RuntimeError("Telegram session is not authorized; run `feedrelay login` first")

    try:
        notifier = _build_notifier(client)
        logger.info("Selected notification method - %s", settings.NOTIFICATIONS.method)
        cycle = _build_cycle(data_dir, limit, notifier)
        await cycle.run()
    finally:
        if client is not None:
            await client.disconnect()


def _run(data_dir: Optional[str], limit: Optional[int]) -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    errors = collect_config_errors(settings.CONFIG, os.environ)
    if errors:
        logger.error(format_error_summary(errors))
        raise SystemExit(2)

    resolved_dir = Path(data_dir or settings.DATA_DIR).resolve()
    resolved_limit = clamp_max_items(limit) if limit is not None else settings.FEED.max_items
    logger.info("Starting feedrelay (data: %s, limit: %s)", resolved_dir, resolved_limit)

    try:
        asyncio.run(_run_cycle(resolved_dir, resolved_limit))
    except StorageError:
        logger.exception("Relay cycle aborted: queue storage unavailable")
        raise SystemExit(1)


def _login() -> None:
    _print_banner()
    _configure_logging()

    async def _run_login() -> None:
        client = build_client()
        await client.connect()
        try:
            await authorize(client)
        finally:
            await client.disconnect()

    asyncio.run(_run_login())


def _inspect(data_dir: Optional[str]) -> None:
    _print_banner()
    from frontend.app import QueueInspectorApp

    resolved_dir = Path(data_dir or settings.DATA_DIR).resolve()
    QueueInspectorApp(DirectoryQueue(resolved_dir / QUEUE_DIR)).run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="feedrelay")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Fetch new items and deliver everything pending (one cycle)")
    run_parser.add_argument("--data-dir", help="Directory holding the queue and watermark")
    run_parser.add_argument("--limit", type=int, help="Maximum items to fetch (1-100)")
    subparsers.add_parser("login", help="Authorize the Telegram session used by saved_messages")
    inspect_parser = subparsers.add_parser("inspect", help="Browse queue partitions in a TUI")
    inspect_parser.add_argument("--data-dir", help="Directory holding the queue and watermark")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login()
        return
    if args.command == "inspect":
        _inspect(args.data_dir)
        return
    _run(getattr(args, "data_dir", None), getattr(args, "limit", None))


if __name__ == "__main__":
    main()
