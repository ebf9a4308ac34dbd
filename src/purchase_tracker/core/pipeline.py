"""Ingestion pipeline: parse, key, write, count.

One pipeline instance processes one event at a time and keeps no state
between events, so any number of instances may share a store.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from .errors import ParseError
from .keys import KeyDeriver
from .parser import EventParser
from .types import ProductId, PurchaseRecord, Timestamp

if TYPE_CHECKING:
    from ..interfaces.metrics import MetricsSink
    from ..interfaces.store import KeyValueStore

logger = logging.getLogger(__name__)


def wall_clock_millis() -> Timestamp:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class IngestionPipeline:
    """Turns raw purchase events into stored records.

    Args:
        store: Store receiving one write per valid event
        parser: Event parser (string product ids by default)
        metrics: Optional sink receiving purchases.<customer> increments
        clock: Source of ingest timestamps; event timestamps are never used
        key_deriver: Key derivation (concatenated fields by default)

    Invalid events are logged and dropped. StorageError from the store is
    propagated so the transport can decide whether to redeliver.
    """

    def __init__(
        self,
        store: KeyValueStore,
        parser: EventParser | None = None,
        metrics: MetricsSink | None = None,
        clock: Callable[[], Timestamp] | None = None,
        key_deriver: Callable[[Timestamp, str, ProductId], bytes] | None = None,
    ):
        self.store = store
        self.parser = parser or EventParser()
        self.metrics = metrics
        self.clock = clock or wall_clock_millis
        self.key_deriver = key_deriver or KeyDeriver()

    def on_event(self, payload: bytes) -> PurchaseRecord | None:
        """Process one event; return the stored record or None if dropped."""
        try:
            event = self.parser.parse(payload)
        except ParseError as e:
            logger.error(f"Invalid purchase event {payload!r}: {e}")
            return None

        record = PurchaseRecord(
            customer_id=event.customer_id,
            product_id=event.product_id,
            quantity=event.quantity,
            ingest_time=self.clock(),
        )
        key = self.key_deriver(record.ingest_time, record.customer_id, record.product_id)

        self.store.write(key, record)
        logger.debug(
            f"Stored purchase customer={record.customer_id} product={record.product_id} "
            f"quantity={record.quantity}"
        )

        self._emit(record)
        return record

    def _emit(self, record: PurchaseRecord) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.count(f"purchases.{record.customer_id}", 1)
        except Exception as e:
            logger.warning(f"Metrics sink failed for customer {record.customer_id!r}: {e}")
