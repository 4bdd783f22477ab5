"""
Login Attempt Tracker
In-memory counter of failed logins per identifier (email or DNI).

Attempts are kept in a rolling window and pruned lazily on access. State
lives only in process memory: a restart clears every counter.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from portal.config import settings


@dataclass
class LoginAttemptRecord:
    """Failed attempts for one identifier within the current window."""

    timestamps: list[float] = field(default_factory=list)
    warned: bool = False


@dataclass(frozen=True)
class AttemptStatus:
    """Result of registering a failed attempt."""

    count: int
    warned: bool


class LoginAttemptTracker:
    """
    Thread-safe rolling-window counter keyed by lower-cased identifier.

    Each read-modify-write of a record happens under one lock, so the
    returned count always reflects every earlier attempt.
    """

    def __init__(
        self,
        window_seconds: float = settings.login_attempt_window_seconds,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: dict[str, LoginAttemptRecord] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(identifier: str) -> str:
        return identifier.strip().lower()

    def record_failed_attempt(self, identifier: str) -> AttemptStatus:
        """
        Register a failed attempt and return the in-window count.

        Args:
            identifier: Email or DNI used to log in

        Returns:
            AttemptStatus with the number of attempts in the window and
            whether a warning was already issued for it
        """
        key = self._key(identifier)
        now = self._clock()
        with self._lock:
            record = self._records.setdefault(key, LoginAttemptRecord())
            record.timestamps = [ts for ts in record.timestamps if now - ts < self.window_seconds]
            if not record.timestamps:
                # Everything expired: a fresh window may warn again
                record.warned = False
            record.timestamps.append(now)
            return AttemptStatus(count=len(record.timestamps), warned=record.warned)

    def mark_warned(self, identifier: str) -> None:
        """Flag the current window as warned; no-op for unknown identifiers."""
        with self._lock:
            record = self._records.get(self._key(identifier))
            if record is not None:
                record.warned = True

    def reset_attempts(self, identifier: str) -> None:
        """Forget every attempt for the identifier (successful login)."""
        with self._lock:
            self._records.pop(self._key(identifier), None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


# Module-level singleton, shared across requests
login_tracker = LoginAttemptTracker()


def get_login_tracker() -> LoginAttemptTracker:
    """Dependency returning the process-wide tracker."""
    return login_tracker
