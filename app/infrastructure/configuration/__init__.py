"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the persister
using Pydantic BaseSettings with domain-based organization.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)
    ServerSettings: Listener settings class
    StorageSettings: Persistence file and encryption key settings class

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    db_file = settings.storage.DB_FILE
    key = settings.storage.resolve_encryption_key()

    if settings.is_production:
        # Production-specific logic...
    ```
"""

from infrastructure.configuration.settings import Settings, settings
from infrastructure.configuration.infrastructure import (
    ServerSettings,
    StorageSettings,
)

__all__ = ["Settings", "settings", "ServerSettings", "StorageSettings"]
