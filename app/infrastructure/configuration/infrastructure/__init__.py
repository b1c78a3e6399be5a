"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.server import ServerSettings
from infrastructure.configuration.infrastructure.storage import (
    DEFAULT_ENCRYPTION_KEY,
    DEFAULT_ENCRYPTION_KEY_ENV,
    StorageSettings,
)

__all__ = [
    "ServerSettings",
    "StorageSettings",
    "DEFAULT_ENCRYPTION_KEY",
    "DEFAULT_ENCRYPTION_KEY_ENV",
]
