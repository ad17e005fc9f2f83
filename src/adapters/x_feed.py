"""X (Twitter) API v2 feed adapter.

Fetches the configured user's timeline and maps each post to a WorkItem whose
payload holds everything a notifier needs to render it.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from adapters.http_json import HttpError, build_url, request_json
from core.errors import FeedError
from core.ids import id_sort_key, is_newer, is_valid_id
from core.models import WorkItem

LOGGER = logging.getLogger(__name__)

API_BASE = "https://api.x.com/2"
# The timeline endpoint only accepts max_results in this range.
_MIN_RESULTS = 5
_MAX_RESULTS = 100
# since_id reaches back at most 3200 posts, i.e. 32 full pages.
_MAX_PAGES = 32


class XTimelineFeed:
    """FeedPort implementation over GET /2/users/:id/tweets."""

    def __init__(self, bearer_token: str, username: str, timeout: float = 15) -> None:
        if not bearer_token or not username:
            raise ValueError("X bearer token and username must be provided")
        self._bearer_token = bearer_token
        self._username = username.lstrip("@")
        self._timeout = timeout
        self._user: Optional[dict[str, Any]] = None

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        url = build_url(f"{API_BASE}{path}", params)
        headers = {"Authorization": f"Bearer {self._bearer_token}"}
        try:
            return request_json("GET", url, headers=headers, timeout=self._timeout)
        except HttpError as e:
            raise FeedError(str(e)) from e

    def _resolve_user(self) -> dict[str, Any]:
        if self._user is None:
            body = self._get(
                f"/users/by/username/{self._username}",
                {"user.fields": "name,username,profile_image_url"},
            )
            user = (body or {}).get("data")
            if not user or "id" not in user:
                raise FeedError(f"X user {self._username!r} not found")
            self._user = user
        return self._user

    def fetch_since(self, cursor: Optional[str], limit: int) -> list[WorkItem]:
        """Return up to limit posts newer than cursor, oldest first.

        The timeline answers newest first, so with a cursor every page back to
        the cursor is read before the oldest posts are kept. Without a cursor
        only the newest page is read.
        """

        user = self._resolve_user()
        params: dict[str, Any] = {
            "max_results": _MAX_RESULTS if cursor else max(_MIN_RESULTS, min(limit, _MAX_RESULTS)),
            "tweet.fields": "created_at,attachments",
            "expansions": "attachments.media_keys",
            "media.fields": "url,type",
        }
        if cursor:
            params["since_id"] = cursor

        items: dict[str, WorkItem] = {}
        for _ in range(_MAX_PAGES):
            body = self._get(f"/users/{user['id']}/tweets", params) or {}
            for item in self._page_items(body, user, cursor):
                items[item.id] = item

            next_token = (body.get("meta") or {}).get("next_token")
            if not cursor or not next_token:
                break
            params["pagination_token"] = next_token
        else:
            LOGGER.warning("Stopped paging the timeline of %s after %s pages", self._username, _MAX_PAGES)

        ordered = sorted(items.values(), key=lambda item: id_sort_key(item.id))
        if len(ordered) > limit:
            LOGGER.info("Timeline for %s has %s new posts; taking the oldest %s", self._username, len(ordered), limit)
            ordered = ordered[:limit]
        LOGGER.debug("Timeline for %s returned %s posts", self._username, len(ordered))
        return ordered

    def _page_items(self, body: dict[str, Any], user: dict[str, Any], cursor: Optional[str]) -> list[WorkItem]:
        posts = body.get("data") or []
        media = (body.get("includes") or {}).get("media") or []
        photos = {
            entry["media_key"]: entry["url"]
            for entry in media
            if entry.get("type") == "photo" and entry.get("url") and entry.get("media_key")
        }

        items = []
        for post in posts:
            post_id = str(post.get("id", ""))
            if not is_valid_id(post_id) or not is_newer(post_id, cursor):
                continue
            items.append(WorkItem(id=post_id, payload=self._to_payload(post, user, photos)))
        return items

    def _to_payload(self, post: dict[str, Any], user: dict[str, Any], photos: dict[str, str]) -> dict[str, Any]:
        media_keys = (post.get("attachments") or {}).get("media_keys") or []
        username = user.get("username") or self._username
        return {
            "id": str(post["id"]),
            "text": post.get("text", ""),
            "url": f"https://x.com/{username}/status/{post['id']}",
            "image_urls": [photos[key] for key in media_keys if key in photos],
            "created_at": post.get("created_at"),
            "author_name": user.get("name") or username,
            "author_profile_url": f"https://x.com/{username}",
            "author_profile_image_url": user.get("profile_image_url"),
        }
