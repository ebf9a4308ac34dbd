"""Common type definitions for the purchase tracker.

Defines the record, key and split types shared by all components.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Core primitive types
Key = bytes
Timestamp = int
ProductId = str | int


class ProductIdMode(Enum):
    """How the product token of an event is interpreted."""

    STRING = "string"
    NUMERIC = "numeric"


class KeyEncoding(Enum):
    """How a record key is built from its fields."""

    CONCAT = "concat"
    LENGTH_PREFIXED = "length_prefixed"


@dataclass(frozen=True)
class PurchaseRecord:
    """A single purchase made by a customer.

    Attributes:
        customer_id: Opaque customer identifier
        product_id: Product identifier (string or numeric, per parser mode)
        quantity: Number of items purchased, never negative
        ingest_time: Epoch milliseconds assigned at processing time
    """

    customer_id: str
    product_id: ProductId
    quantity: int
    ingest_time: Timestamp


@dataclass(frozen=True)
class ParsedEvent:
    """Validated fields of an inbound event, before an ingest time is assigned."""

    customer_id: str
    quantity: int
    product_id: ProductId


@dataclass(frozen=True)
class Split:
    """Half-open key range [start, end) of the store's keyspace.

    A bound of None means the range is unbounded on that side.
    """

    start: Key | None = None
    end: Key | None = None

    def contains(self, key: Key) -> bool:
        """Return True if key falls inside this split."""
        if self.start is not None and key < self.start:
            return False
        if self.end is not None and key >= self.end:
            return False
        return True
