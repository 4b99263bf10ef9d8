"""Broadcast recipient accumulator.

Holds every email newly inserted since process start, in insertion order.
Append-only; it does not deduplicate and is reset only by a restart.
"""

import threading
from typing import Iterable


class EmailAccumulator:
    """Append-only list of onboarded emails, safe for concurrent append/read."""

    def __init__(self) -> None:
        self._emails: list[str] = []
        self._lock = threading.Lock()

    def extend(self, emails: Iterable[str]) -> None:
        """Append emails in order."""
        batch = list(emails)
        with self._lock:
            self._emails.extend(batch)

    def snapshot(self) -> list[str]:
        """Copy of all accumulated emails."""
        with self._lock:
            return list(self._emails)

    def __len__(self) -> int:
        with self._lock:
            return len(self._emails)
