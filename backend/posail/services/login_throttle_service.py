"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts
per (client ip, normalized email).

SECURITY FEATURES:
- Failures are counted inside a rolling window (first failure + window)
- Reaching max_failures locks the key for `lockout` from that failure
- While locked, even a correct password is refused
- A successful login clears the key

The table lives in process memory. It is best-effort, does not survive a
restart, and is shared by all request threads, so every read-modify-write
happens under a lock. One instance is created per app in create_app() and
stored in app.extensions["login_throttle"].
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Hashable

from posail.time_utils import utcnow


@dataclass(frozen=True)
class ThrottleState:
    failures: int = 0
    locked_until: datetime | None = None
    retry_after_seconds: int | None = None

    @property
    def locked(self) -> bool:
        return self.locked_until is not None


@dataclass
class _Entry:
    failures: int
    first_failure_at: datetime
    locked_until: datetime | None = None


def throttle_key(ip_address: str | None, email: str) -> tuple[str, str]:
    return (ip_address or "unknown", email)


class LoginThrottle:
    def __init__(
        self,
        *,
        max_failures: int = 5,
        window: timedelta = timedelta(minutes=10),
        lockout: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_failures = max_failures
        self.window = window
        self.lockout = lockout
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.Lock()

    def _live_entry(self, key: Hashable, now: datetime) -> _Entry | None:
        """Return the key's entry, dropping it if its window or lockout is over."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.locked_until is not None:
            if now >= entry.locked_until:
                del self._entries[key]
                return None
            return entry
        if now - entry.first_failure_at > self.window:
            del self._entries[key]
            return None
        return entry

    def _state(self, entry: _Entry | None, now: datetime) -> ThrottleState:
        if entry is None:
            return ThrottleState()
        if entry.locked_until is None:
            return ThrottleState(failures=entry.failures)
        remaining = max(1, int((entry.locked_until - now).total_seconds()))
        return ThrottleState(
            failures=entry.failures,
            locked_until=entry.locked_until,
            retry_after_seconds=remaining,
        )

    def get_state(self, key: Hashable) -> ThrottleState:
        with self._lock:
            now = self._clock()
            return self._state(self._live_entry(key, now), now)

    def record_failure(self, key: Hashable) -> ThrottleState:
        with self._lock:
            now = self._clock()
            entry = self._live_entry(key, now)
            if entry is None:
                entry = _Entry(failures=0, first_failure_at=now)
                self._entries[key] = entry
            if entry.locked_until is None:
                entry.failures += 1
                if entry.failures >= self.max_failures:
                    entry.locked_until = now + self.lockout
            return self._state(entry, now)

    def clear(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
