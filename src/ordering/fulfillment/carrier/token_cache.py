"""Process-wide cache for a carrier API token.

The token is fetched on first use and again once it expires or is
invalidated (for example after the carrier answers 401).
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta


class TokenCache:
    def __init__(
        self,
        fetch: Callable[[], str],
        ttl: timedelta,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self._fetch = fetch
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at: datetime | None = None

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    def is_valid(self) -> bool:
        return self._token is not None and self._expires_at is not None and self._clock() < self._expires_at

    def get(self) -> str:
        with self._lock:
            if not self.is_valid():
                self._token = self._fetch()
                self._expires_at = self._clock() + self._ttl
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = None
