"""Cursor-based scanner over one split of a sorted store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ..core.errors import ScannerStateError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ..core.types import Key, PurchaseRecord, Split


class _OrderedSource(Protocol):
    def next_after(self, split: Split, after: Key | None) -> tuple[Key, PurchaseRecord] | None:
        ...


class RangeSplitScanner:
    """Lazily yields the records of a split in ascending key order.

    Each advance seeks the first key after the cursor, so writes made while
    scanning never invalidate the scan. They may or may not be observed.

    Invariants:
        - A key is yielded at most once per initialization
        - Every key yielded lies inside the split
    """

    def __init__(self, source: _OrderedSource):
        self._source = source
        self._split: Split | None = None
        self._cursor: Key | None = None
        self._exhausted = False

    def initialize(self, split: Split) -> None:
        """Bind to split and rewind to its start."""
        self._split = split
        self._cursor = None
        self._exhausted = False

    def next_record(self) -> PurchaseRecord | None:
        if self._split is None:
            raise ScannerStateError("Scanner used before initialize()")
        if self._exhausted:
            return None

        entry = self._source.next_after(self._split, self._cursor)
        if entry is None:
            self._exhausted = True
            return None

        self._cursor, record = entry
        return record

    def __iter__(self) -> Iterator[PurchaseRecord]:
        while True:
            record = self.next_record()
            if record is None:
                return
            yield record
