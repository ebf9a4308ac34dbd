"""Unit tests for SortedKeyValueStore."""

import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from purchase_tracker.components.sorted_store import SortedKeyValueStore
from purchase_tracker.core.errors import JournalCorruptionError, StorageError
from purchase_tracker.core.types import PurchaseRecord, Split


def make_record(i, customer="bob"):
    return PurchaseRecord(customer, f"product{i}", i, 1000 + i)


@pytest.fixture
def store():
    """Create memory-only store for tests."""
    return SortedKeyValueStore(split_count=4)


@pytest.fixture
def journal_path(temp_dir):
    """Create journal path for durable stores."""
    return Path(temp_dir) / "purchases.journal"


def test_write_then_read(store):
    """Test that a read after a write returns the written record."""
    record = make_record(1)
    store.write(b"key1", record)
    assert store.read(b"key1") == record


def test_read_missing_key(store):
    """Test that absent keys read as None."""
    assert store.read(b"nonexistent") is None


def test_write_overwrites(store):
    """Test that the last write to a key wins."""
    store.write(b"key1", make_record(1))
    store.write(b"key1", make_record(2))
    assert store.read(b"key1") == make_record(2)
    assert len(store) == 1


def test_invalid_split_count():
    """Test that split_count must be positive."""
    with pytest.raises(ValueError):
        SortedKeyValueStore(split_count=0)


def test_list_splits_empty_store(store):
    """Test that an empty store yields one unbounded split."""
    assert store.list_splits() == [Split(None, None)]


def test_list_splits_fewer_keys_than_splits(store):
    """Test that split count is capped by key count."""
    store.write(b"b", make_record(1))
    store.write(b"a", make_record(2))
    assert store.list_splits() == [Split(None, b"b"), Split(b"b", None)]


def test_list_splits_cover_keyspace(store):
    """Test that splits are contiguous and unbounded at both ends."""
    for i in range(10):
        store.write(f"key{i:02d}".encode(), make_record(i))

    splits = store.list_splits()
    assert len(splits) == 4
    assert splits[0].start is None
    assert splits[-1].end is None
    for left, right in zip(splits, splits[1:]):
        assert left.end == right.start


def test_every_key_in_exactly_one_split(store):
    """Test that each stored key belongs to exactly one split."""
    keys = [f"key{i:03d}".encode() for i in range(37)]
    for i, key in enumerate(keys):
        store.write(key, make_record(i))

    splits = store.list_splits()
    for key in keys:
        assert sum(split.contains(key) for split in splits) == 1


def test_scan_all_splits_yields_every_record(store):
    """Test that scanning every split yields exactly the written records."""
    expected = {}
    for i in range(25):
        key = f"key{i:02d}".encode()
        expected[key] = make_record(i)
        store.write(key, expected[key])

    scanned = []
    for split in store.list_splits():
        scanned.extend(store.create_scanner(split))

    assert len(scanned) == 25
    assert sorted(scanned, key=lambda r: r.quantity) == sorted(
        expected.values(), key=lambda r: r.quantity
    )


def test_keys_written_after_listing_are_covered(store):
    """Test that keys outside the original range still land in some split."""
    store.write(b"m", make_record(1))
    store.write(b"n", make_record(2))
    splits = store.list_splits()

    store.write(b"a", make_record(3))
    store.write(b"z", make_record(4))

    scanned = [r for split in splits for r in store.create_scanner(split)]
    assert len(scanned) == 4


def test_next_after_respects_split_bounds(store):
    """Test that next_after never leaves the split."""
    for key in (b"a", b"b", b"c", b"d"):
        store.write(key, PurchaseRecord(key.decode(), "p", 1, 1))

    split = Split(b"b", b"d")
    assert store.next_after(split, None)[0] == b"b"
    assert store.next_after(split, b"b")[0] == b"c"
    assert store.next_after(split, b"c") is None


def test_concurrent_writes_distinct_keys(store):
    """Test that parallel writers to distinct keys do not interfere."""

    def writer(worker):
        for i in range(200):
            store.write(f"w{worker}-{i:03d}".encode(), make_record(i, f"c{worker}"))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 800
    assert store.read(b"w3-199") == make_record(199, "c3")


def test_list_splits_during_writes(store):
    """Test that listing and scanning while writing neither fails nor duplicates."""

    def writer():
        for i in range(3000):
            store.write(f"key{i:06d}".encode(), make_record(i))

    t = threading.Thread(target=writer)
    t.start()
    while t.is_alive():
        seen = []
        for split in store.list_splits():
            seen.extend(r.quantity for r in store.create_scanner(split))
        assert len(seen) == len(set(seen))
    t.join()

    seen = [r.quantity for split in store.list_splits() for r in store.create_scanner(split)]
    assert sorted(seen) == list(range(3000))


def test_journal_replay(journal_path):
    """Test that a reopened store recovers its records."""
    with SortedKeyValueStore(journal_path=journal_path) as store:
        store.write(b"key1", make_record(1))
        store.write(b"key2", PurchaseRecord("joe", 42, 1, 5))
        store.write(b"key1", make_record(3))

    with SortedKeyValueStore(journal_path=journal_path) as store:
        assert len(store) == 2
        assert store.read(b"key1") == make_record(3)
        assert store.read(b"key2") == PurchaseRecord("joe", 42, 1, 5)


def test_journal_append_failure_raises_storage_error(journal_path):
    """Test that I/O errors during write surface as StorageError."""
    store = SortedKeyValueStore(journal_path=journal_path)
    with patch.object(store._journal, "append", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            store.write(b"key1", make_record(1))
    assert store.read(b"key1") is None
    store.close()


def test_write_after_close_raises_storage_error(journal_path):
    """Test that writing to a closed durable store fails loudly."""
    store = SortedKeyValueStore(journal_path=journal_path)
    store.close()
    with pytest.raises(StorageError):
        store.write(b"key1", make_record(1))


def test_corrupt_journal_fails_open(journal_path):
    """Test that a corrupted journal prevents the store from opening."""
    journal_path.write_bytes(b"\x00" * 16)
    with pytest.raises(JournalCorruptionError):
        SortedKeyValueStore(journal_path=journal_path)


def test_unopenable_journal(temp_dir):
    """Test that a journal path that cannot be opened raises StorageError."""
    with pytest.raises(StorageError):
        SortedKeyValueStore(journal_path=Path(temp_dir))


class HalfWriteFile:
    """File wrapper whose write stores half the bytes and then fails."""

    def __init__(self, real):
        self.real = real

    def tell(self):
        return self.real.tell()

    def write(self, data):
        self.real.write(data[:len(data) // 2])
        self.real.flush()
        raise OSError("No space left on device")

    def close(self):
        self.real.close()


def test_failed_write_keeps_journal_replayable(journal_path):
    """Test that writes after a short journal write survive a reopen."""
    with SortedKeyValueStore(journal_path=journal_path) as store:
        store.write(b"k1", make_record(1))
        store._journal._fd = HalfWriteFile(store._journal._fd)
        with pytest.raises(StorageError):
            store.write(b"k2", make_record(2))
        store.write(b"k3", make_record(3))

    with SortedKeyValueStore(journal_path=journal_path) as store:
        assert store.read(b"k1") == make_record(1)
        assert store.read(b"k2") is None
        assert store.read(b"k3") == make_record(3)


def test_fsync_failure_is_not_resurrected(journal_path):
    """Test that a write reported as failed stays absent after reopen."""
    store = SortedKeyValueStore(journal_path=journal_path)
    with patch("purchase_tracker.components.journal.os.fsync", side_effect=OSError("EIO")):
        with pytest.raises(StorageError):
            store.write(b"k1", make_record(1))
    assert store.read(b"k1") is None
    store.close()

    with SortedKeyValueStore(journal_path=journal_path) as store:
        assert store.read(b"k1") is None
        assert len(store) == 0
