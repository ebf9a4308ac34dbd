"""Batch consumption of a store through its splits.

Records come back in no particular order across splits; sort explicitly
when a total order is needed.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..interfaces.store import KeyValueStore
    from .types import PurchaseRecord, Split

logger = logging.getLogger(__name__)


def scan_split(store: KeyValueStore, split: Split) -> list[PurchaseRecord]:
    """Return every record a scanner over split yields."""
    return list(store.create_scanner(split))


def scan_all(store: KeyValueStore, workers: int = 4) -> list[PurchaseRecord]:
    """Scan every split on up to workers threads and return all records.

    The first exception raised by any worker is re-raised after all
    workers finish.
    """
    splits = store.list_splits()
    results: list[list[PurchaseRecord]] = [[] for _ in splits]
    errors: list[BaseException] = []
    errors_lock = threading.Lock()
    next_index = iter(range(len(splits)))
    index_lock = threading.Lock()

    def worker() -> None:
        while True:
            with index_lock:
                i = next(next_index, None)
            if i is None:
                return
            try:
                results[i] = scan_split(store, splits[i])
            except Exception as e:
                with errors_lock:
                    errors.append(e)
                return

    threads = [
        threading.Thread(target=worker, name=f"scan-worker-{n}", daemon=True)
        for n in range(min(workers, len(splits)))
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    if errors:
        raise errors[0]

    records = [record for chunk in results for record in chunk]
    logger.info(f"Scanned {len(records)} records from {len(splits)} splits")
    return records


def count_by_customer(records: Iterable[PurchaseRecord]) -> dict[str, int]:
    """Number of purchase records per customer."""
    return dict(Counter(record.customer_id for record in records))


def sort_by_ingest_time(records: Iterable[PurchaseRecord]) -> list[PurchaseRecord]:
    return sorted(records, key=lambda r: (r.ingest_time, r.customer_id, str(r.product_id)))
