"""TTL cache mapping a sender IP to the NMS system identity it belongs to."""

import os
import threading
import time
from typing import Callable

DEFAULT_TTL_SECONDS = float(os.getenv("SYSTEM_CACHE_TTL", "60"))


class SystemIdentityCache:
    """Thread-safe IP → system-name cache with per-entry expiry.

    Owned by the ingestion component and shared by its worker threads. The
    clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[str | None, float]] = {}
        self._lock = threading.Lock()

    def lookup(self, ip: str) -> tuple[bool, str | None]:
        """Return ``(hit, system)``. A hit may carry None: "known to have no system"."""
        with self._lock:
            cached = self._entries.get(ip)
            if cached is None:
                return False, None
            system, expires_at = cached
            if self._clock() >= expires_at:
                del self._entries[ip]
                return False, None
            return True, system

    def insert(self, ip: str, system: str | None) -> None:
        with self._lock:
            self._entries[ip] = (system, self._clock() + self.ttl_seconds)

    def evict_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [ip for ip, (_, expires_at) in self._entries.items() if now >= expires_at]
            for ip in expired:
                del self._entries[ip]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
