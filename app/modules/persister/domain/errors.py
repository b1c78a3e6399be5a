"""Errors for the persister module."""


class PersisterError(Exception):
    """Base class for ingestion and export failures."""


class MalformedInputError(PersisterError):
    """The request body could not be decoded. Nothing was written.

    Raised for invalid JSON, invalid UTF-8, non-object top level values,
    payloads that are not base64 strings, and bodies cut short by a client
    disconnect.
    """


class StoreWriteError(PersisterError):
    """A store write failed mid-batch. Every record of the batch was rolled back."""


class SurrogateKeyExhaustedError(PersisterError):
    """Every generated surrogate id collided with an existing key."""

    def __init__(self, attempts: int):
        super().__init__(
            f"unable to generate a unique surrogate id after {attempts} attempts"
        )
        self.attempts = attempts


class ExportError(PersisterError):
    """Enumeration of the store failed."""
