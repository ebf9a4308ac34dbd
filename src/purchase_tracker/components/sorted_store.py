"""Sorted in-memory key-value store with optional journal durability.

Uses sortedcontainers.SortedDict so splits are contiguous key ranges.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from sortedcontainers import SortedDict

from ..core.codec import decode_record, encode_record
from ..core.errors import StorageError
from ..core.types import Key, PurchaseRecord, Split
from .journal import RecordJournal
from .scanner import RangeSplitScanner

logger = logging.getLogger(__name__)


class SortedKeyValueStore:
    """Purchase record store backed by a lock-guarded SortedDict.

    Args:
        split_count: Maximum number of splits returned by list_splits()
        journal_path: Journal file to replay and append to, or None for a
            memory-only store
        flush_every_write: Whether to fsync the journal after each write

    Invariants:
        - Writes reach the journal before they become visible to readers
        - Splits from one list_splits() call are contiguous half-open ranges
          whose union is the whole keyspace
        - All access to the sorted map holds the store lock
    """

    def __init__(
        self,
        split_count: int = 4,
        journal_path: str | Path | None = None,
        flush_every_write: bool = True,
    ):
        if split_count < 1:
            raise ValueError(f"split_count must be >= 1, got {split_count}")
        self.split_count = split_count
        self._data: SortedDict = SortedDict()
        self._lock = threading.Lock()
        self._journal: RecordJournal | None = None

        if journal_path is not None:
            try:
                self._journal = RecordJournal(journal_path, flush_every_write=flush_every_write)
            except OSError as e:
                raise StorageError(f"Failed to open journal {journal_path}: {e}") from e
            self._replay()

        logger.info(f"Initialized purchase store with {len(self._data)} records")

    def _replay(self) -> None:
        """Rebuild the sorted map from the journal."""
        count = 0
        try:
            for key, value in self._journal:
                self._data[key] = decode_record(value)
                count += 1
            self._journal.truncate_partial_tail()
        except OSError as e:
            raise StorageError(f"Failed to replay journal: {e}") from e
        logger.info(f"Replayed {count} journal entries into {len(self._data)} keys")

    def write(self, key: Key, record: PurchaseRecord) -> None:
        """Upsert record under key; last write wins."""
        value = encode_record(record) if self._journal is not None else None
        with self._lock:
            if self._journal is not None:
                try:
                    self._journal.append(key, value)
                except (OSError, RuntimeError) as e:
                    raise StorageError(f"Failed to persist key {key!r}: {e}") from e
            self._data[key] = record

    def read(self, key: Key) -> PurchaseRecord | None:
        with self._lock:
            return self._data.get(key)

    def list_splits(self) -> list[Split]:
        """Partition the current keys into at most split_count ranges."""
        with self._lock:
            total = len(self._data)
            parts = min(self.split_count, total) or 1
            # First key of each split after the first
            boundaries = [self._data.peekitem(total * i // parts)[0] for i in range(1, parts)]

        starts = [None, *boundaries]
        ends = [*boundaries, None]
        return [Split(start, end) for start, end in zip(starts, ends)]

    def create_scanner(self, split: Split) -> RangeSplitScanner:
        scanner = RangeSplitScanner(self)
        scanner.initialize(split)
        return scanner

    def next_after(self, split: Split, after: Key | None) -> tuple[Key, PurchaseRecord] | None:
        """Return the first entry in split with a key strictly greater than after.

        With after=None the first entry of the split is returned.
        """
        with self._lock:
            if after is None:
                index = 0 if split.start is None else self._data.bisect_left(split.start)
            else:
                index = self._data.bisect_right(after)
            if index >= len(self._data):
                return None
            key, record = self._data.peekitem(index)
        if split.end is not None and key >= split.end:
            return None
        return key, record

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def close(self) -> None:
        """Close the journal, if any."""
        logger.info("Closing purchase store")
        with self._lock:
            if self._journal is not None:
                self._journal.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
