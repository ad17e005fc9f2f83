"""Telegram client factory for feedrelay.

Only the saved_messages notification method needs a Telethon user session;
the other channels never touch this module.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

DEFAULT_SESSION_NAME = "feedrelay"


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID/API_HASH are read via python-dotenv; SESSION_NAME names the local
    .session file and defaults to "feedrelay".
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", DEFAULT_SESSION_NAME)

    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    try:
        parsed_id = int(api_id)
    except ValueError as exc:
        raise RuntimeError("API_ID must be numeric") from exc

    logging.getLogger(__name__).info("Initializing Telegram client (session %s)", session_name)
    return TelegramClient(session_name, parsed_id, api_hash)
