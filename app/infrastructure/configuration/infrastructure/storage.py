"""Persistence file and encryption key settings."""

import os

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings

# Built-in fallback used when the encryption key environment variable is empty.
DEFAULT_ENCRYPTION_KEY = "Z6pT9Iw+YTiRtyIuNjn3q0vwc6BSZpPFpZn7sH606xU"
DEFAULT_ENCRYPTION_KEY_ENV = "PERSISTER_ENCRYPTION_KEY"


class StorageSettings(InfrastructureSettings):
    """Embedded store configuration.

    Environment Variables:
        PERSISTER_DB: Persistence file used as backend (default: kryptografpersister.db)
        PERSISTER_ENCRYPTION_KEY_ENV: Name of the environment variable holding
            the encryption key (default: PERSISTER_ENCRYPTION_KEY)
        PERSISTER_MAX_SURROGATE_ATTEMPTS: Surrogate id regenerations allowed
            per record before the batch is aborted (default: 16)

    The encryption key itself is never stored on this object. It is read on
    demand through resolve_encryption_key() and forwarded to the store.
    """

    DB_FILE: str = Field(default="kryptografpersister.db", alias="PERSISTER_DB")
    ENCRYPTION_KEY_ENV: str = Field(
        default=DEFAULT_ENCRYPTION_KEY_ENV, alias="PERSISTER_ENCRYPTION_KEY_ENV"
    )
    MAX_SURROGATE_ATTEMPTS: int = Field(
        default=16, ge=1, alias="PERSISTER_MAX_SURROGATE_ATTEMPTS"
    )

    def resolve_encryption_key(self) -> str:
        """Return the key from ENCRYPTION_KEY_ENV, or the built-in default."""
        key = os.environ.get(self.ENCRYPTION_KEY_ENV, "").strip()
        if not key:
            return DEFAULT_ENCRYPTION_KEY
        return key
