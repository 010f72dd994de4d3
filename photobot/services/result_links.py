"""
Result Link Store.

Maps short opaque tokens to enhanced image URLs so inline buttons carry a
token instead of the full URL (Telegram limits callback data to 64 bytes).

- In-memory cache, process lifetime
- TTL-based expiry with periodic cleanup
"""

import secrets
import time
from collections.abc import Callable

from structlog import get_logger

logger = get_logger(__name__)


class ResultLinkStore:
    """
    Token -> URL registry for Download / Get Link buttons.

    Usage:
        store = ResultLinkStore(ttl_seconds=86400)
        token = store.issue("https://example.com/enhanced.jpg")
        url = store.resolve(token)  # None once expired
    """

    TOKEN_BYTES = 9  # 12 url-safe characters
    CLEANUP_INTERVAL = 300

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # Key: token, Value: (url, expires_at_timestamp)
        self._entries: dict[str, tuple[str, float]] = {}
        self._last_cleanup = clock()

    def issue(self, url: str) -> str:
        """Register url and return a fresh token for it."""
        self._cleanup_if_needed()
        token = secrets.token_urlsafe(self.TOKEN_BYTES)
        while token in self._entries:
            token = secrets.token_urlsafe(self.TOKEN_BYTES)
        self._entries[token] = (url, self._clock() + self.ttl_seconds)
        return token

    def resolve(self, token: str) -> str | None:
        """Return the URL for token, or None if unknown or expired."""
        entry = self._entries.get(token)
        if entry is None:
            return None
        url, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[token]
            return None
        return url

    def __len__(self) -> int:
        return len(self._entries)

    def _cleanup_if_needed(self) -> None:
        now = self._clock()
        if now - self._last_cleanup < self.CLEANUP_INTERVAL:
            return
        expired = [token for token, (_, exp) in self._entries.items() if now >= exp]
        for token in expired:
            del self._entries[token]
        self._last_cleanup = now
        if expired:
            logger.debug("result_links_cleaned", removed=len(expired), remaining=len(self._entries))
