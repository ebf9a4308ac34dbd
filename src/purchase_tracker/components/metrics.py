"""Metrics sinks for purchase counters."""

from __future__ import annotations

import logging
import threading
from collections import Counter

logger = logging.getLogger(__name__)


class InMemoryMetrics:
    """Thread-safe in-process counters."""

    def __init__(self):
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def count(self, name: str, delta: int) -> None:
        with self._lock:
            self._counts[name] += delta

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def snapshot(self) -> dict[str, int]:
        """Return a copy of all counters."""
        with self._lock:
            return dict(self._counts)


class LoggingMetrics:
    """Writes each increment to the log at DEBUG level."""

    def count(self, name: str, delta: int) -> None:
        logger.debug(f"metric {name} += {delta}")
