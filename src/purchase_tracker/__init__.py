"""Purchase Tracker - purchase event ingestion into a split-scannable store."""

from .components.metrics import InMemoryMetrics, LoggingMetrics
from .components.sorted_store import SortedKeyValueStore
from .core.config import TrackerConfig, build_pipeline, build_store, load_config
from .core.errors import (
    PurchaseTrackerError,
    ConfigError,
    ParseError,
    FieldCountError,
    InvalidQuantityError,
    InvalidProductIdError,
    PayloadDecodeError,
    StorageError,
    JournalCorruptionError,
    RecordCodecError,
    ScannerStateError,
)
from .core.keys import KeyDeriver, derive_key, derive_length_prefixed_key
from .core.parser import EventParser
from .core.pipeline import IngestionPipeline
from .core.scan import count_by_customer, scan_all, scan_split, sort_by_ingest_time
from .core.types import KeyEncoding, ParsedEvent, ProductIdMode, PurchaseRecord, Split

__all__ = [
    "InMemoryMetrics",
    "LoggingMetrics",
    "SortedKeyValueStore",
    "TrackerConfig",
    "build_pipeline",
    "build_store",
    "load_config",
    "PurchaseTrackerError",
    "ConfigError",
    "ParseError",
    "FieldCountError",
    "InvalidQuantityError",
    "InvalidProductIdError",
    "PayloadDecodeError",
    "StorageError",
    "JournalCorruptionError",
    "RecordCodecError",
    "ScannerStateError",
    "KeyDeriver",
    "derive_key",
    "derive_length_prefixed_key",
    "EventParser",
    "IngestionPipeline",
    "count_by_customer",
    "scan_all",
    "scan_split",
    "sort_by_ingest_time",
    "KeyEncoding",
    "ParsedEvent",
    "ProductIdMode",
    "PurchaseRecord",
    "Split",
]
