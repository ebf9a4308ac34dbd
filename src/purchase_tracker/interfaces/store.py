"""Protocol definitions for the key-value store and split scanners."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from ..core.types import Key, PurchaseRecord, Split


class SplitScanner(Protocol):
    """Lazy, restartable iterator over the records of one split."""

    def initialize(self, split: Split) -> None:
        """Bind to split and rewind to its start."""
        ...

    def next_record(self) -> PurchaseRecord | None:
        """Return the next record, or None once the split is exhausted."""
        ...

    def __iter__(self) -> Iterator[PurchaseRecord]:
        ...


class KeyValueStore(Protocol):
    """Public API for purchase record storage."""

    def write(self, key: Key, record: PurchaseRecord) -> None:
        """Upsert record under key.

        Invariants:
            - A read of key after write returns record or a later value
            - Concurrent writes to the same key resolve last-write-wins

        Raises:
            StorageError: the underlying store failed to persist the record
        """
        ...

    def read(self, key: Key) -> PurchaseRecord | None:
        """Return the current record for key or None if not present."""
        ...

    def list_splits(self) -> list[Split]:
        """Return a covering, non-overlapping partition of the keyspace.

        Safe to call during writes; concurrently written keys may or may not
        be visible to scanners over the returned splits.
        """
        ...

    def create_scanner(self, split: Split) -> SplitScanner:
        """Return a scanner initialized on split."""
        ...
