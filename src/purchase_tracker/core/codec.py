"""Binary encoding of purchase records.

Record format (little-endian):
[customer_len (4B)] [customer bytes] [product_tag (1B)] [product] [quantity (8B)] [ingest_time (8B)]

A string product is [len (4B)] [bytes]; an integer product is a signed 8-byte value.
"""

from __future__ import annotations

import struct

from .errors import RecordCodecError
from .types import PurchaseRecord

PRODUCT_STR = 0
PRODUCT_INT = 1


def _pack_str(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def encode_record(record: PurchaseRecord) -> bytes:
    """Encode a record into bytes."""
    try:
        out = _pack_str(record.customer_id)
        if isinstance(record.product_id, int):
            out += struct.pack("<B", PRODUCT_INT) + struct.pack("<q", record.product_id)
        else:
            out += struct.pack("<B", PRODUCT_STR) + _pack_str(record.product_id)
        out += struct.pack("<q", record.quantity)
        out += struct.pack("<q", record.ingest_time)
    except struct.error as e:
        raise RecordCodecError(f"Cannot encode record {record}: {e}") from e
    return out


class _Reader:
    """Cursor over an encoded record."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        chunk = self.data[self.pos:self.pos + n]
        if len(chunk) < n:
            raise RecordCodecError(f"Truncated record at offset {self.pos}")
        self.pos += n
        return chunk

    def unpack(self, fmt: str):
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def string(self) -> str:
        length = self.unpack("<I")
        try:
            return self.take(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise RecordCodecError(f"Invalid UTF-8 in record: {e}") from e


def decode_record(data: bytes) -> PurchaseRecord:
    """Decode bytes produced by encode_record."""
    reader = _Reader(data)
    customer_id = reader.string()

    tag = reader.unpack("<B")
    if tag == PRODUCT_INT:
        product_id = reader.unpack("<q")
    elif tag == PRODUCT_STR:
        product_id = reader.string()
    else:
        raise RecordCodecError(f"Unknown product tag: {tag}")

    quantity = reader.unpack("<q")
    ingest_time = reader.unpack("<q")
    if reader.pos != len(data):
        raise RecordCodecError(f"Trailing bytes after record: {len(data) - reader.pos}")

    return PurchaseRecord(customer_id, product_id, quantity, ingest_time)
