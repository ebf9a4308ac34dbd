"""Record key derivation.

Keys are built from (ingest_time, customer_id, product_id). The default
CONCAT encoding joins the decimal fields with no separator, so distinct
inputs can collide, e.g. (1, "ab", "c") and (1, "a", "bc"). The
LENGTH_PREFIXED encoding removes that ambiguity.
"""

from __future__ import annotations

import struct

from .types import Key, KeyEncoding, ProductId, Timestamp


def derive_key(ingest_time: Timestamp, customer_id: str, product_id: ProductId) -> Key:
    """Concatenate ingest time, customer id and product id as UTF-8 bytes."""
    return f"{ingest_time}{customer_id}{product_id}".encode("utf-8")


def derive_length_prefixed_key(
    ingest_time: Timestamp, customer_id: str, product_id: ProductId
) -> Key:
    """Encode the fields unambiguously.

    Format: [ingest_time (8B, big-endian)] then, for customer and product,
    [len (4B, big-endian)] [utf-8 bytes]. Big-endian timestamps keep keys
    ordered by ingest time for non-negative values.
    """
    key = struct.pack(">q", ingest_time)
    for field in (customer_id, str(product_id)):
        raw = field.encode("utf-8")
        key += struct.pack(">I", len(raw)) + raw
    return key


class KeyDeriver:
    """Derives storage keys using a fixed encoding."""

    def __init__(self, encoding: KeyEncoding = KeyEncoding.CONCAT):
        self.encoding = encoding
        if encoding is KeyEncoding.LENGTH_PREFIXED:
            self._derive = derive_length_prefixed_key
        else:
            self._derive = derive_key

    def __call__(self, ingest_time: Timestamp, customer_id: str, product_id: ProductId) -> Key:
        return self._derive(ingest_time, customer_id, product_id)
