"""Embedded, encrypted key-value persistence.

Provides the abstract transactional store consumed by the persister core and
the AES-GCM encrypted file-backed implementation used in production.

Usage:
    from infrastructure.persistence import open_store

    store = open_store(settings)
    try:
        with store.transaction() as tx:
            tx.store("id", {"key": "k", "ciphertext": "SGVsbG8="})
    finally:
        store.close()
"""

from infrastructure.persistence.encrypted_file import (
    EncryptedFileStore,
    decode_encryption_key,
)
from infrastructure.persistence.errors import (
    InvalidEncryptionKeyError,
    KeyNotFoundError,
    StoreClosedError,
    StoreCorruptedError,
    StoreError,
)
from infrastructure.persistence.service import open_store
from infrastructure.persistence.store import KeyValueStore, Transaction

__all__ = [
    "KeyValueStore",
    "Transaction",
    "EncryptedFileStore",
    "decode_encryption_key",
    "open_store",
    "StoreError",
    "StoreClosedError",
    "StoreCorruptedError",
    "InvalidEncryptionKeyError",
    "KeyNotFoundError",
]
