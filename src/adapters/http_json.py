"""Minimal JSON-over-HTTP helper shared by the HTTP adapters.

Calls are blocking; the adapter boundary keeps them swappable for an async
client without touching the core.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Mapping, Optional

DEFAULT_TIMEOUT = 10
USER_AGENT = "feedrelay (https://github.com/feedrelay/feedrelay, 1.0)"


class HttpError(RuntimeError):
    """Non-2xx response or transport failure."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


def build_url(base: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Append non-empty query parameters to base."""

    if not params:
        return base
    query = {key: value for key, value in params.items() if value is not None}
    if not query:
        return base
    return f"{base}?{urllib.parse.urlencode(query)}"


def request_json(
    method: str,
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    payload: Optional[Any] = None,
    form: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Send a request and return the decoded JSON body (None when empty)."""

    data = None
    request = urllib.request.Request(url, method=method)
    request.add_header("User-Agent", USER_AGENT)
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        request.add_header("Content-Type", "application/json")
    elif form is not None:
        data = urllib.parse.urlencode(form).encode("utf-8")
        request.add_header("Content-Type", "application/x-www-form-urlencoded")
    for name, value in (headers or {}).items():
        request.add_header(name, value)

    try:
        with urllib.request.urlopen(request, data=data, timeout=timeout) as response:
            body = response.read()
    except urllib.error.HTTPError as e:
        detail = e.read().decode("utf-8", errors="replace")
        raise HttpError(f"HTTP {e.code} from {method} {_strip_query(url)}: {detail}", status=e.code) from e
    except (urllib.error.URLError, OSError) as e:
        raise HttpError(f"{method} {_strip_query(url)} failed: {e}") from e

    if not body:
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HttpError(f"invalid JSON from {method} {_strip_query(url)}: {e}") from e


def _strip_query(url: str) -> str:
    return url.split("?", 1)[0]
