"""Encrypted, file-backed implementation of KeyValueStore.

The whole key space is held in memory and rewritten to the persistence file
on every committed transaction that changed something. The file layout is::

    MAGIC (5 bytes) || nonce (12 bytes) || AES-256-GCM(plaintext, aad=MAGIC)

where the plaintext is a JSON document ``{"format": 1, "entries": {...}}``
mapping every key to the JSON text of its value.

Transactions are serialized by one re-entrant lock held for the whole scope,
for readers and writers alike, which gives serializable isolation. Each
transaction works on a copy of the committed map; the copy replaces the
committed map only after it has been durably written, so a failed commit or
an exception inside the scope leaves the store exactly as it was.
"""

import base64
import binascii
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from infrastructure.logging import get_module_logger
from infrastructure.persistence.errors import (
    InvalidEncryptionKeyError,
    KeyNotFoundError,
    StoreClosedError,
    StoreCorruptedError,
    StoreError,
)
from infrastructure.persistence.store import KeyValueStore, Transaction

logger = get_module_logger()

MAGIC = b"KPDB\x01"
NONCE_SIZE = 12
KEY_SIZE = 32
FILE_FORMAT_VERSION = 1


def decode_encryption_key(encryption_key: str) -> bytes:
    """Decode a base64 (standard or URL-safe, padding optional) 256-bit key.

    Raises:
        InvalidEncryptionKeyError: the key is empty, not base64, or not 32 bytes.
    """
    raw = (encryption_key or "").strip()
    if not raw:
        raise InvalidEncryptionKeyError("encryption key is empty")
    padded = raw + "=" * (-len(raw) % 4)
    try:
        if "-" in raw or "_" in raw:
            key = base64.urlsafe_b64decode(padded)
        else:
            key = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidEncryptionKeyError("encryption key is not valid base64") from e
    if len(key) != KEY_SIZE:
        raise InvalidEncryptionKeyError(
            f"encryption key must decode to {KEY_SIZE} bytes, got {len(key)}"
        )
    return key


class _FileTransaction(Transaction):
    def __init__(self, entries: Dict[str, str]):
        self._entries = entries
        self._active = True
        self.dirty = False

    def _ensure_active(self) -> None:
        if not self._active:
            raise StoreError("transaction is no longer active")

    def close(self) -> None:
        self._active = False

    def has_key(self, key: str) -> bool:
        self._ensure_active()
        return key in self._entries

    def load(self, key: str) -> Any:
        self._ensure_active()
        try:
            encoded = self._entries[key]
        except KeyError:
            raise KeyNotFoundError(key) from None
        return json.loads(encoded)

    def store(self, key: str, value: Any) -> None:
        self._ensure_active()
        if not isinstance(key, str):
            raise StoreError(f"keys must be str, got {type(key).__name__}")
        try:
            encoded = json.dumps(value, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise StoreError(f"unable to encode value for key {key!r}: {e}") from e
        self._entries[key] = encoded
        self.dirty = True

    def delete(self, key: str) -> None:
        self._ensure_active()
        if self._entries.pop(key, None) is not None:
            self.dirty = True

    def keys(self) -> List[str]:
        self._ensure_active()
        return sorted(self._entries)


class EncryptedFileStore(KeyValueStore):
    """AES-GCM encrypted key-value store persisted to a single file.

    Args:
        path: Persistence file. Missing or empty files open as an empty store.
        encryption_key: base64 encoded 32 byte key.

    Raises:
        InvalidEncryptionKeyError: the key cannot be decoded.
        StoreCorruptedError: the file exists but cannot be decrypted or parsed.
        StoreError: the file cannot be read.
    """

    def __init__(self, path: Union[str, os.PathLike], encryption_key: str):
        self._path = Path(path).expanduser()
        self._aead = AESGCM(decode_encryption_key(encryption_key))
        self._lock = threading.RLock()
        self._closed = False
        self._entries = self._read()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            if self._closed:
                raise StoreClosedError()
            staged = dict(self._entries)
            tx = _FileTransaction(staged)
            try:
                yield tx
            finally:
                tx.close()
            # Only reached when the block exited without an exception
            if tx.dirty:
                self._write(staged)
                self._entries = staged

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            logger.info("persistence_file_closed", db_file=str(self._path))

    def _read(self) -> Dict[str, str]:
        try:
            blob = self._path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StoreError(f"unable to read persistence file {self._path}: {e}") from e

        if not blob:
            return {}
        if not blob.startswith(MAGIC) or len(blob) < len(MAGIC) + NONCE_SIZE:
            raise StoreCorruptedError(
                f"{self._path} is not a persistence file (bad header)"
            )

        nonce = blob[len(MAGIC) : len(MAGIC) + NONCE_SIZE]
        ciphertext = blob[len(MAGIC) + NONCE_SIZE :]
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, MAGIC)
        except InvalidTag as e:
            raise StoreCorruptedError(
                f"unable to decrypt {self._path}: wrong encryption key or corrupted file"
            ) from e

        try:
            document = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise StoreCorruptedError(f"unable to decode {self._path}: {e}") from e

        if (
            not isinstance(document, dict)
            or document.get("format") != FILE_FORMAT_VERSION
            or not isinstance(document.get("entries"), dict)
        ):
            raise StoreCorruptedError(
                f"{self._path} has an unsupported persistence format"
            )
        return dict(document["entries"])

    def _write(self, entries: Dict[str, str]) -> None:
        plaintext = json.dumps(
            {"format": FILE_FORMAT_VERSION, "entries": entries},
            separators=(",", ":"),
        ).encode("utf-8")
        nonce = os.urandom(NONCE_SIZE)
        blob = MAGIC + nonce + self._aead.encrypt(nonce, plaintext, MAGIC)

        directory = self._path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(blob)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise StoreError(
                f"unable to write persistence file {self._path}: {e}"
            ) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("temporary_file_cleanup_failed", path=tmp_name)
