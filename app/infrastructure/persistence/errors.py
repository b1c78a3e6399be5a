"""Errors raised by the embedded key-value store."""


class StoreError(Exception):
    """Base class for all store failures."""


class StoreClosedError(StoreError):
    """Raised when a closed store is used."""

    def __init__(self, message: str = "store is closed"):
        super().__init__(message)


class StoreCorruptedError(StoreError):
    """Raised when the persistence file cannot be decrypted or decoded.

    A wrong encryption key surfaces as this error as well, AES-GCM cannot
    tell the two apart.
    """


class InvalidEncryptionKeyError(StoreError):
    """Raised when the encryption key is not base64 for 32 bytes."""


class KeyNotFoundError(StoreError, KeyError):
    """Raised by Transaction.load for a key that is not in the store."""

    def __init__(self, key: str):
        super().__init__(f"key {key!r} not found")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]
