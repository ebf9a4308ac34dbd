"""Parallel ingestion over disjoint subsequences of events.

Stands in for an event transport: each worker thread owns one pipeline
instance and a round-robin slice of the payloads. No retries are made.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from .errors import StorageError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from .pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    """Outcome counts of an ingestion run."""

    stored: int = 0
    dropped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.stored + self.dropped + self.failed


def iter_payloads(path: Path) -> Iterator[bytes]:
    """Yield non-blank lines of a newline-delimited event file as bytes."""
    with open(path, 'rb') as f:
        for line in f:
            line = line.rstrip(b"\r\n")
            if line.strip():
                yield line


def _ingest_slice(pipeline: IngestionPipeline, events: Sequence[bytes]) -> IngestReport:
    partial = IngestReport()
    for payload in events:
        try:
            record = pipeline.on_event(payload)
        except StorageError as e:
            logger.error(f"Failed to store event {payload!r}: {e}")
            partial.failed += 1
            continue
        if record is None:
            partial.dropped += 1
        else:
            partial.stored += 1
    return partial


def ingest_concurrently(
    payloads: Sequence[bytes],
    pipeline_factory: Callable[[], IngestionPipeline],
    workers: int = 4,
) -> IngestReport:
    """Feed payloads to workers pipelines running on separate threads.

    Worker n processes payloads[n::workers]. StorageError on one event is
    counted as a failure and logged; the worker moves on to its next event.
    Any other exception stops that worker and the first one is re-raised
    after all workers finish.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    report = IngestReport()
    report_lock = threading.Lock()
    errors: list[BaseException] = []

    def worker(events: Sequence[bytes]) -> None:
        try:
            partial = _ingest_slice(pipeline_factory(), events)
        except Exception as e:
            logger.error(f"Ingestion worker {threading.current_thread().name} failed: {e}")
            with report_lock:
                errors.append(e)
            return
        with report_lock:
            report.stored += partial.stored
            report.dropped += partial.dropped
            report.failed += partial.failed

    threads = [
        threading.Thread(target=worker, args=(payloads[n::workers],), name=f"ingest-worker-{n}")
        for n in range(min(workers, len(payloads)))
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    if errors:
        raise errors[0]

    logger.info(
        f"Ingested {report.total} events: {report.stored} stored, "
        f"{report.dropped} dropped, {report.failed} failed"
    )
    return report
