"""Unit tests for infrastructure.persistence.encrypted_file.

Tests cover:
- encryption key decoding
- durability across reopen
- encryption at rest and wrong key detection
- transaction commit and rollback semantics
- closed store behaviour
"""

import base64
import os

import pytest

from infrastructure.persistence import (
    EncryptedFileStore,
    InvalidEncryptionKeyError,
    KeyNotFoundError,
    StoreClosedError,
    StoreCorruptedError,
    StoreError,
)
from infrastructure.persistence.encrypted_file import MAGIC, decode_encryption_key

RAW_KEY = bytes(range(32))


@pytest.mark.unit
class TestDecodeEncryptionKey:
    """Test suite for decode_encryption_key."""

    def test_standard_base64(self):
        """Standard padded base64 decodes to the raw key."""
        assert decode_encryption_key(base64.b64encode(RAW_KEY).decode()) == RAW_KEY

    def test_padding_optional(self):
        """Unpadded base64 is accepted."""
        encoded = base64.b64encode(RAW_KEY).decode().rstrip("=")

        assert decode_encryption_key(encoded) == RAW_KEY

    def test_urlsafe_base64(self):
        """The URL safe alphabet is accepted."""
        key = b"\xfb\xff" * 16
        encoded = base64.urlsafe_b64encode(key).decode().rstrip("=")

        assert "-" in encoded or "_" in encoded
        assert decode_encryption_key(encoded) == key

    def test_default_key_is_valid(self, encryption_key):
        """The built-in default key decodes to 32 bytes."""
        assert len(decode_encryption_key(encryption_key)) == 32

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "not base64 at all!", base64.b64encode(b"short").decode()],
    )
    def test_invalid_keys(self, value):
        """Blank, undecodable and short keys are rejected."""
        with pytest.raises(InvalidEncryptionKeyError):
            decode_encryption_key(value)


@pytest.mark.unit
class TestEncryptedFileStore:
    """Test suite for EncryptedFileStore."""

    def test_missing_file_opens_empty(self, db_path, encryption_key):
        """A missing file opens as an empty store without creating it."""
        store = EncryptedFileStore(db_path, encryption_key)

        assert store.length() == 0
        assert not db_path.exists()

    def test_empty_file_opens_empty(self, db_path, encryption_key):
        """A zero length file opens as an empty store."""
        db_path.write_bytes(b"")

        assert EncryptedFileStore(db_path, encryption_key).length() == 0

    def test_values_survive_reopen(self, db_path, encryption_key):
        """Committed values are read back after reopening."""
        store = EncryptedFileStore(db_path, encryption_key)
        store.run(lambda tx: tx.store("k1", {"key": "a", "ciphertext": "YQ=="}))
        store.close()

        reopened = EncryptedFileStore(db_path, encryption_key)

        assert reopened.keys() == ["k1"]
        assert reopened.run(lambda tx: tx.load("k1")) == {
            "key": "a",
            "ciphertext": "YQ==",
        }

    def test_file_is_encrypted(self, store, db_path):
        """Neither keys nor values appear in plaintext on disk."""
        store.run(lambda tx: tx.store("visible-key", {"key": "plaintext-marker"}))

        blob = db_path.read_bytes()

        assert blob.startswith(MAGIC)
        assert b"visible-key" not in blob
        assert b"plaintext-marker" not in blob

    def test_wrong_key_is_detected(self, store, db_path, other_encryption_key):
        """Opening with a different key reports a corrupted file."""
        store.run(lambda tx: tx.store("k1", {"key": "a"}))

        with pytest.raises(StoreCorruptedError, match="wrong encryption key"):
            EncryptedFileStore(db_path, other_encryption_key)

    def test_foreign_file_is_rejected(self, db_path, encryption_key):
        """A file without the store header is rejected."""
        db_path.write_bytes(b"SQLite format 3\x00" + os.urandom(64))

        with pytest.raises(StoreCorruptedError, match="bad header"):
            EncryptedFileStore(db_path, encryption_key)

    def test_tampered_file_is_rejected(self, store, db_path, encryption_key):
        """A modified ciphertext fails authentication."""
        store.run(lambda tx: tx.store("k1", {"key": "a"}))
        blob = bytearray(db_path.read_bytes())
        blob[-1] ^= 0x01
        db_path.write_bytes(bytes(blob))

        with pytest.raises(StoreCorruptedError):
            EncryptedFileStore(db_path, encryption_key)

    def test_exception_rolls_back_transaction(self, store):
        """An exception inside a transaction discards its writes and deletes."""
        store.run(lambda tx: tx.store("k1", "kept"))

        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.store("k2", "discarded")
                tx.delete("k1")
                raise RuntimeError("abort")

        assert store.keys() == ["k1"]
        assert store.run(lambda tx: tx.load("k1")) == "kept"

    def test_rolled_back_transaction_does_not_touch_file(self, store, db_path):
        """A rolled back transaction leaves the file bytes unchanged."""
        store.run(lambda tx: tx.store("k1", "kept"))
        before = db_path.read_bytes()

        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.store("k2", "discarded")
                raise RuntimeError("abort")

        assert db_path.read_bytes() == before

    def test_writes_visible_inside_transaction(self, store):
        """A transaction sees its own uncommitted writes."""
        with store.transaction() as tx:
            tx.store("k1", 1)
            assert tx.has_key("k1")
            assert tx.load("k1") == 1

    def test_failed_write_keeps_previous_state(self, store, db_path):
        """A failed file write keeps the last committed state in memory."""
        store.run(lambda tx: tx.store("k1", "kept"))

        def fail(_entries):
            raise StoreError("disk full")

        store._write = fail
        with pytest.raises(StoreError, match="disk full"):
            store.run(lambda tx: tx.store("k2", "lost"))

        assert store.keys() == ["k1"]

    def test_read_only_transaction_does_not_write(self, store, db_path):
        """Transactions without changes do not write the file."""
        store.run(lambda tx: tx.keys())

        assert not db_path.exists()

    def test_keys_are_sorted(self, store):
        """Keys are enumerated in sorted order."""
        store.run(lambda tx: [tx.store(k, k) for k in ("b", "c", "a")])

        assert store.keys() == ["a", "b", "c"]

    def test_load_missing_key(self, store):
        """Loading a missing key raises KeyNotFoundError."""
        with pytest.raises(KeyNotFoundError):
            store.run(lambda tx: tx.load("missing"))

    def test_missing_key_is_also_a_key_error(self, store):
        """KeyNotFoundError is also a KeyError."""
        with pytest.raises(KeyError):
            store.run(lambda tx: tx.load("missing"))

    def test_unencodable_value(self, store):
        """Values that cannot be serialised raise StoreError."""
        with pytest.raises(StoreError):
            store.run(lambda tx: tx.store("k1", object()))

    def test_transaction_unusable_after_scope(self, store):
        """A transaction cannot be used after its block exits."""
        with store.transaction() as tx:
            pass

        with pytest.raises(StoreError):
            tx.has_key("k1")

    def test_closed_store_rejects_transactions(self, store):
        """A closed store refuses new transactions."""
        store.close()

        assert store.closed
        with pytest.raises(StoreClosedError):
            store.length()

    def test_close_is_idempotent(self, store):
        """Closing twice is harmless."""
        store.close()
        store.close()

        assert store.closed

    def test_expands_user_home(self, encryption_key, monkeypatch, tmp_path):
        """A leading ~ in the path is expanded."""
        monkeypatch.setenv("HOME", str(tmp_path))

        store = EncryptedFileStore("~/persister.db", encryption_key)

        assert store.path == tmp_path / "persister.db"

    def test_no_temporary_files_left_behind(self, store, db_path):
        """Atomic rewrites leave only the store file."""
        store.run(lambda tx: tx.store("k1", 1))
        store.run(lambda tx: tx.store("k2", 2))

        assert sorted(p.name for p in db_path.parent.iterdir()) == [db_path.name]
