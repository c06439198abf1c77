"""Source loader: fetch a JSON document for a source URL.

HTTP(S) URLs are fetched with ``requests`` in a worker thread so the event
loop keeps running; ``file://`` URLs and plain paths are read from disk.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol
from urllib.parse import unquote, urlparse

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def is_url(source: str) -> bool:
    """Check if source is an HTTP(S) URL."""
    return source.startswith(("http://", "https://"))


def default_timeout() -> float:
    """Read the HTTP timeout from $JFS_HTTP_TIMEOUT (seconds)."""
    value = os.getenv("JFS_HTTP_TIMEOUT")
    if not value:
        return DEFAULT_TIMEOUT
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring invalid JFS_HTTP_TIMEOUT=%r", value)
        return DEFAULT_TIMEOUT


class Loader(Protocol):
    async def fetch(self, url: str) -> Any: ...


class HttpLoader:
    """Loads JSON from HTTP(S) URLs, ``file://`` URLs and local paths."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout if timeout is not None else default_timeout()
        self.session = session

    async def fetch(self, url: str) -> Any:
        """Fetch and parse ``url`` without blocking the event loop.

        Raises:
            FetchError: On network, HTTP status, I/O or JSON parse failure
        """
        return await asyncio.to_thread(self.fetch_sync, url)

    def fetch_sync(self, url: str) -> Any:
        if is_url(url):
            return self._fetch_http(url)
        return self._read_file(url)

    def _fetch_http(self, url: str) -> Any:
        logger.debug("GET %s", url)
        get = self.session.get if self.session is not None else requests.get
        try:
            response = get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, f"response is not valid JSON: {e}") from e

    def _read_file(self, url: str) -> Any:
        parsed = urlparse(url)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        elif parsed.scheme and len(parsed.scheme) > 1:
            raise FetchError(url, f"unsupported URL scheme '{parsed.scheme}'")
        else:
            path = Path(url).expanduser()

        logger.debug("Reading %s", path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise FetchError(url, str(e)) from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise FetchError(url, f"file is not valid JSON: {e}") from e


__all__ = ["DEFAULT_TIMEOUT", "HttpLoader", "Loader", "is_url"]
