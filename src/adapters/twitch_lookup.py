"""Twitch Helix enrichment adapter.

Looks up a streamer's profile once per cycle so notifications can show their
avatar. Every failure degrades to "no enrichment".
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from adapters.http_json import HttpError, build_url, request_json
from core.errors import TransientLookupError

LOGGER = logging.getLogger(__name__)

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
USERS_URL = "https://api.twitch.tv/helix/users"


class TwitchProfileLookup:
    """EnrichmentPort implementation using an app access token."""

    def __init__(self, client_id: str, client_secret: str, username: str, timeout: float = 10) -> None:
        if not client_id or not client_secret:
            raise ValueError("Twitch client id and client secret are required")
        self._client_id = client_id
        self._client_secret = client_secret
        self._username = username
        self._timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    def lookup(self) -> Optional[dict[str, Any]]:
        """Return twitch_* payload fields, or None when the lookup fails."""

        if not self._username or not self._username.strip():
            LOGGER.warning("Cannot look up a Twitch profile without a username")
            return None
        try:
            user = self._fetch_user()
        except TransientLookupError as exc:
            LOGGER.error("Error fetching Twitch user info for %s: %s", self._username, exc)
            return None
        if user is None:
            LOGGER.warning("No Twitch user found for username %s", self._username)
            return None

        LOGGER.info("Fetched Twitch profile for %s", self._username)
        return {
            "twitch_username": self._username,
            "twitch_profile_image_url": user.get("profile_image_url"),
            "twitch_channel_url": f"https://www.twitch.tv/{user.get('login') or self._username}",
        }

    def _fetch_user(self) -> Optional[dict[str, Any]]:
        headers = {"Client-Id": self._client_id, "Authorization": f"Bearer {self._access_token()}"}
        url = build_url(USERS_URL, {"login": self._username})
        try:
            body = request_json("GET", url, headers=headers, timeout=self._timeout)
        except HttpError as e:
            if e.status == 401:
                self._token = None
            raise TransientLookupError(str(e)) from e
        users = (body or {}).get("data") or []
        return users[0] if users else None

    def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        try:
            body = request_json(
                "POST",
                TOKEN_URL,
                form={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "grant_type": "client_credentials",
                },
                timeout=self._timeout,
            )
        except HttpError as e:
            raise TransientLookupError(f"token request failed: {e}") from e
        token = (body or {}).get("access_token")
        if not token:
            raise TransientLookupError("token response carried no access_token")
        # Refresh a minute early.
        self._token = token
        self._token_expires_at = time.monotonic() + max(int(body.get("expires_in", 0)) - 60, 0)
        return token
