"""
Utility Functions
=================

Common utilities used across the Affinity Recs system.
"""

import math
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from .config import COOLDOWN_SECONDS

CooldownKey = Tuple[str, str, str]


class CooldownStore:
    """
    In-memory cooldown map with per-entry time-to-live.

    Keys are (command, scope, user) where scope is typically a server or
    channel ID. Expired entries are dropped when read. One store is created
    by whatever invokes the scoring core and passed in explicitly.
    """

    def __init__(self, default_seconds: float = COOLDOWN_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize store.

        Args:
            default_seconds: Cooldown used when set() is called without one
            clock: Monotonic time source (injectable for tests)
        """
        self.default_seconds = default_seconds
        self._clock = clock
        self._entries: Dict[CooldownKey, Tuple[float, float]] = {}
        self._lock = threading.Lock()

    def set(self, command: str, scope: str, user: str, seconds: Optional[float] = None) -> None:
        """Start a cooldown for a user."""
        seconds = self.default_seconds if seconds is None else seconds
        with self._lock:
            self._entries[(command, scope, user)] = (seconds, self._clock())

    def remaining(self, command: str, scope: str, user: str) -> Optional[float]:
        """Seconds left on the user's cooldown, or None if there is none."""
        key = (command, scope, user)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            seconds, created_at = entry
            left = seconds - (self._clock() - created_at)
            if left <= 0:
                del self._entries[key]
                return None
            return left

    def clear(self, command: str, scope: str, user: str) -> None:
        with self._lock:
            self._entries.pop((command, scope, user), None)

    def purge(self) -> int:
        """Drop all expired entries. Returns number of entries removed."""
        now = self._clock()
        with self._lock:
            expired: List[CooldownKey] = [
                key for key, (seconds, created_at) in self._entries.items()
                if seconds - (now - created_at) <= 0
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


def to_percent(score: float) -> int:
    """
    Convert a [0, 1] score to a whole percentage, rounding halves up.

    Args:
        score: Similarity score

    Returns:
        Integer percentage
    """
    return int(math.floor(score * 100 + 0.5))
