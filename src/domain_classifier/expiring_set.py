"""
Time-expiring domain set.

Domains recently found unreachable directly are placed in this set for a
fixed window. Membership lapses on its own once the window has passed; no
caller ever deletes an entry.

Expired entries are reclaimed lazily when looked up and by a full sweep that
``add`` runs every ``sweep_every`` inserts, so names that are never queried
again still get dropped.
"""

import threading
import time
from typing import Callable

from domain_classifier.config import TRANSIENT_BLOCK_TTL_SECONDS


class ExpiringDomainSet:
    """
    Thread-safe set whose members expire ``ttl_seconds`` after insertion.

    Re-adding a live member does not extend its lifetime: a domain stays
    penalized for one window counted from its first detection.
    """

    DEFAULT_SWEEP_EVERY = 64

    def __init__(
        self,
        ttl_seconds: float = TRANSIENT_BLOCK_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = DEFAULT_SWEEP_EVERY,
    ) -> None:
        """
        Args:
            ttl_seconds: Lifetime of each entry, must be positive
            clock: Monotonic time source in seconds (injectable for tests)
            sweep_every: Run a full expiry sweep after this many inserts
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if sweep_every < 1:
            raise ValueError(f"sweep_every must be at least 1, got {sweep_every}")

        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._sweep_every = sweep_every
        # domain -> expiry time on self._clock
        self._expires_at: dict[str, float] = {}
        self._inserts_since_sweep = 0
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def add(self, name: str) -> bool:
        """
        Insert ``name`` unless it is already a live member.

        Returns:
            True if the name was inserted, False if it was already live
        """
        with self._lock:
            now = self._clock()
            expiry = self._expires_at.get(name)
            if expiry is not None and now < expiry:
                return False

            self._expires_at[name] = now + self._ttl
            self._inserts_since_sweep += 1
            if self._inserts_since_sweep >= self._sweep_every:
                self._purge_locked(now)
            return True

    def has(self, name: str) -> bool:
        """Return True while ``name`` was inserted less than one TTL ago."""
        with self._lock:
            expiry = self._expires_at.get(name)
            if expiry is None:
                return False
            if self._clock() < expiry:
                return True
            del self._expires_at[name]
            return False

    def purge_expired(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        expired = [name for name, expiry in self._expires_at.items() if now >= expiry]
        for name in expired:
            del self._expires_at[name]
        self._inserts_since_sweep = 0
        return len(expired)

    def snapshot(self) -> list[str]:
        """Live members, in no particular order."""
        with self._lock:
            now = self._clock()
            return [name for name, expiry in self._expires_at.items() if now < expiry]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        return len(self.snapshot())

    def stored_count(self) -> int:
        """Entries held in memory, including expired ones not yet reclaimed."""
        with self._lock:
            return len(self._expires_at)
