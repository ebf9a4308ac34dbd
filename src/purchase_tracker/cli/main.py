# CLI using argparse that ingests purchase events into a journaled store and scans it back.
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from purchase_tracker.components.metrics import InMemoryMetrics
from purchase_tracker.core.config import (
    TrackerConfig,
    build_pipeline,
    build_store,
    load_config,
)
from purchase_tracker.core.errors import ConfigError, StorageError
from purchase_tracker.core.runner import ingest_concurrently, iter_payloads
from purchase_tracker.core.scan import count_by_customer, scan_all, sort_by_ingest_time
from purchase_tracker.core.types import KeyEncoding, ProductIdMode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="purchase-tracker", description="Ingest and scan purchase events"
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="TOML config file with a [tracker] table")
    common.add_argument("--data-dir", type=str, help="Directory holding the store journal")

    sub = p.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", parents=[common], help="Ingest events from a file")
    ingest.add_argument("input", type=Path, help="File with one '<customer>, <quantity>, <product>' per line")
    ingest.add_argument("--workers", type=int, help="Number of parallel pipelines")
    ingest.add_argument(
        "--numeric-product-ids",
        action="store_true",
        help="Parse product ids as integers",
    )
    ingest.add_argument(
        "--length-prefixed-keys",
        action="store_true",
        help="Derive collision-free length-prefixed keys",
    )

    scan = sub.add_parser("scan", parents=[common], help="Print all stored purchases")
    scan.add_argument("--splits", type=int, help="Number of splits to scan in parallel")

    counts = sub.add_parser("counts", parents=[common], help="Print purchases per customer")
    counts.add_argument("--splits", type=int, help="Number of splits to scan in parallel")
    return p


def resolve_config(args: argparse.Namespace) -> TrackerConfig:
    """Merge the config file (if any) with command-line overrides."""
    config = load_config(args.config) if args.config else TrackerConfig()
    overrides = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if getattr(args, "workers", None) is not None:
        overrides["workers"] = args.workers
    if getattr(args, "splits", None) is not None:
        overrides["split_count"] = args.splits
    if getattr(args, "numeric_product_ids", False):
        overrides["product_id_mode"] = ProductIdMode.NUMERIC
    if getattr(args, "length_prefixed_keys", False):
        overrides["key_encoding"] = KeyEncoding.LENGTH_PREFIXED
    config = dataclasses.replace(config, **overrides)
    config.validate()
    if config.data_dir is None:
        raise ConfigError("A data directory is required (--data-dir or data_dir in config)")
    return config


def run_ingest(args: argparse.Namespace, config: TrackerConfig) -> int:
    if not args.input.exists():
        raise ConfigError(f"Input file not found: {args.input}")
    payloads = list(iter_payloads(args.input))
    metrics = InMemoryMetrics()
    with build_store(config) as store:
        report = ingest_concurrently(
            payloads,
            lambda: build_pipeline(store, config, metrics),
            workers=config.workers,
        )
    print(f"Stored {report.stored}, dropped {report.dropped}, failed {report.failed}")
    return 1 if report.failed else 0


def run_scan(args: argparse.Namespace, config: TrackerConfig) -> int:
    with build_store(config) as store:
        records = scan_all(store, workers=config.workers)
    for r in sort_by_ingest_time(records):
        print(f"{r.ingest_time}\t{r.customer_id}\t{r.product_id}\t{r.quantity}")
    return 0


def run_counts(args: argparse.Namespace, config: TrackerConfig) -> int:
    with build_store(config) as store:
        records = scan_all(store, workers=config.workers)
    for customer, n in sorted(count_by_customer(records).items()):
        print(f"{customer}\t{n}")
    return 0


COMMANDS = {"ingest": run_ingest, "scan": run_scan, "counts": run_counts}


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args)
    except ConfigError as e:
        print(f"Error loading config: {e}")
        return 2

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args, config)
    except ConfigError as e:
        print(f"Error: {e}")
        return 2
    except StorageError as e:
        logger.error(f"Storage failure: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
