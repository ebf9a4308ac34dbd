"""Protocol definition for the metrics sink."""

from __future__ import annotations

from typing import Protocol


class MetricsSink(Protocol):
    """Counter sink; callers do not consume any result."""

    def count(self, name: str, delta: int) -> None:
        """Increment counter name by delta."""
        ...
