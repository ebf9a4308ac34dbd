"""Configuration for the purchase tracker.

Defines the tunable parameters and the explicit wiring of store and pipeline.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..components.sorted_store import SortedKeyValueStore
from .errors import ConfigError
from .keys import KeyDeriver
from .parser import EventParser
from .pipeline import IngestionPipeline
from .types import KeyEncoding, ProductIdMode

if TYPE_CHECKING:
    from ..interfaces.metrics import MetricsSink
    from ..interfaces.store import KeyValueStore

# Types accepted for each key of the [tracker] TOML table
_TOML_TYPES: dict[str, type] = {
    "data_dir": str,
    "split_count": int,
    "product_id_mode": str,
    "key_encoding": str,
    "journal_flush_every_write": bool,
    "workers": int,
    "log_level": str,
}


@dataclass
class TrackerConfig:
    """Configuration parameters for purchase ingestion and storage.

    Attributes:
        data_dir: Directory holding the store journal, or None for memory only
        split_count: Maximum number of splits returned by one enumeration
        product_id_mode: Whether product ids are strings or integers
        key_encoding: How record keys are derived from record fields
        journal_flush_every_write: Whether to fsync after each journal append
        workers: Number of parallel ingestion and scan workers
        log_level: Root logging level used by the CLI
    """

    data_dir: str | None = None
    split_count: int = 4
    product_id_mode: ProductIdMode = ProductIdMode.STRING
    key_encoding: KeyEncoding = KeyEncoding.CONCAT
    journal_flush_every_write: bool = True
    workers: int = 4
    log_level: str = "INFO"

    def validate(self) -> None:
        """Raise ConfigError if any value is out of range."""
        if self.split_count < 1:
            raise ConfigError(f"split_count must be >= 1, got {self.split_count}")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        for name, value in data.items():
            expected = _TOML_TYPES[name]
            # bool is an int subclass; reject it for integer fields
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigError(
                    f"{name} must be {expected.__name__}, got {type(value).__name__}: {value!r}"
                )

        values = dict(data)
        try:
            if "product_id_mode" in values:
                values["product_id_mode"] = ProductIdMode(values["product_id_mode"])
            if "key_encoding" in values:
                values["key_encoding"] = KeyEncoding(values["key_encoding"])
        except ValueError as e:
            raise ConfigError(str(e)) from e

        config = cls(**values)
        config.validate()
        return config


def load_config(path: Path) -> TrackerConfig:
    """Load a TrackerConfig from the [tracker] table of a TOML file."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    return TrackerConfig.from_dict(data.get("tracker", {}))


def build_store(config: TrackerConfig) -> SortedKeyValueStore:
    """Open the concrete store described by config."""
    journal_path = None
    if config.data_dir is not None:
        journal_path = Path(config.data_dir) / "purchases.journal"
    return SortedKeyValueStore(
        split_count=config.split_count,
        journal_path=journal_path,
        flush_every_write=config.journal_flush_every_write,
    )


def build_pipeline(
    store: KeyValueStore,
    config: TrackerConfig,
    metrics: MetricsSink | None = None,
) -> IngestionPipeline:
    """Compose a pipeline over store using the parser and key settings in config."""
    return IngestionPipeline(
        store,
        parser=EventParser(config.product_id_mode),
        metrics=metrics,
        key_deriver=KeyDeriver(config.key_encoding),
    )
