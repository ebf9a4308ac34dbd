"""Append-only record journal.

Provides a durable log of store writes with CRC32 checksums, replayed
when a store is reopened.
"""

from __future__ import annotations
import os
import struct
import zlib
import logging
from pathlib import Path
from typing import BinaryIO, Iterator
from ..core.types import Key
from ..core.errors import JournalCorruptionError

logger = logging.getLogger(__name__)

# Journal entry format:
# [magic (4B)] [key_len (4B)] [key bytes] [value_len (4B)] [value bytes] [crc32 (4B)]
MAGIC = 0x50524A01  # "PRJ" + version
_HEADER = struct.Struct('<I')
_LENGTH = struct.Struct('<I')


class RecordJournal:
    """Append-only journal of (key, encoded record) entries.

    Args:
        path: Path to journal file
        flush_every_write: Whether to fsync after each append

    Invariants:
        - Entries are written with a checksum over magic, lengths and payload
        - A truncated entry at EOF is skipped during replay
        - Entries are returned in append order
    """

    def __init__(self, path: str | Path, flush_every_write: bool = True):
        self.path = Path(path)
        self.flush_every_write = flush_every_write
        self.valid_bytes = 0
        self._fd: BinaryIO | None = None
        self._open_for_write()

    def _open_for_write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.path, 'ab')
        self._fd.seek(0, os.SEEK_END)
        logger.debug(f"Opened journal {self.path} at offset {self._fd.tell()}")

    def append(self, key: Key, value: bytes) -> None:
        """Append an entry.

        If the write or sync fails the file is truncated back to its size
        before the call, so a failed append never reappears on replay.

        Raises:
            OSError: the entry could not be written or synced
        """
        if self._fd is None:
            raise RuntimeError("Journal is closed")

        payload = _HEADER.pack(MAGIC)
        payload += _LENGTH.pack(len(key)) + key
        payload += _LENGTH.pack(len(value)) + value
        entry = payload + struct.pack('<I', zlib.crc32(payload))

        offset = self._fd.tell()
        try:
            self._fd.write(entry)
            if self.flush_every_write:
                self.sync()
            else:
                self._fd.flush()
        except OSError:
            self._rollback(offset)
            raise

        logger.debug(f"Appended journal entry at offset {offset}, key_len={len(key)}")

    def _rollback(self, offset: int) -> None:
        """Discard everything written at or after offset.

        If the file cannot be truncated the journal stays closed and later
        appends fail.
        """
        fd, self._fd = self._fd, None
        try:
            fd.close()
        except OSError as e:
            logger.warning(f"Error closing journal {self.path} during rollback: {e}")
        try:
            os.truncate(self.path, offset)
            self._open_for_write()
        except OSError as e:
            logger.error(f"Journal {self.path} could not be rolled back to {offset}: {e}")
            return
        logger.warning(f"Rolled back journal {self.path} to offset {offset}")

    def sync(self) -> None:
        """Force data to disk (fsync)."""
        if self._fd:
            self._fd.flush()
            os.fsync(self._fd.fileno())

    def close(self) -> None:
        if self._fd:
            self.sync()
            self._fd.close()
            self._fd = None
            logger.info(f"Closed journal {self.path}")

    def __iter__(self) -> Iterator[tuple[Key, bytes]]:
        """Iterate (key, value) entries in append order.

        Tracks the offset just past the last intact entry in valid_bytes.
        """
        self.valid_bytes = 0
        with open(self.path, 'rb') as f:
            while True:
                magic_bytes = f.read(4)
                if not magic_bytes:
                    break
                if len(magic_bytes) < 4:
                    logger.warning("Partial journal entry at EOF, skipping")
                    break

                magic = _HEADER.unpack(magic_bytes)[0]
                if magic != MAGIC:
                    raise JournalCorruptionError(f"Invalid magic: {magic:x}")

                key_len_bytes, key = _read_field(f)
                if key is None:
                    break
                value_len_bytes, value = _read_field(f)
                if value is None:
                    break

                crc_bytes = f.read(4)
                if len(crc_bytes) < 4:
                    logger.warning("Partial journal CRC at EOF, skipping")
                    break
                stored_crc = struct.unpack('<I', crc_bytes)[0]

                payload = magic_bytes + key_len_bytes + key + value_len_bytes + value
                computed_crc = zlib.crc32(payload)
                if stored_crc != computed_crc:
                    raise JournalCorruptionError(
                        f"CRC mismatch: expected {computed_crc:x}, got {stored_crc:x}"
                    )

                self.valid_bytes = f.tell()
                yield (key, value)

    def truncate_partial_tail(self) -> bool:
        """Drop bytes after the last intact entry seen by the latest replay.

        Returns True if the file was truncated.
        """
        size = self.path.stat().st_size
        if size <= self.valid_bytes:
            return False
        logger.warning(
            f"Truncating journal {self.path} from {size} to {self.valid_bytes} bytes"
        )
        os.truncate(self.path, self.valid_bytes)
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _read_field(f: BinaryIO) -> tuple[bytes, bytes | None]:
    """Read a length-prefixed field; the field is None if truncated."""
    len_bytes = f.read(4)
    if len(len_bytes) < 4:
        logger.warning("Partial journal length at EOF, skipping")
        return len_bytes, None
    length = _LENGTH.unpack(len_bytes)[0]
    data = f.read(length)
    if len(data) < length:
        logger.warning("Partial journal field at EOF, skipping")
        return len_bytes, None
    return len_bytes, data
