"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import (
    SettingsDep,
    PersisterServiceDep,
)
from infrastructure.services.providers import (
    get_settings,
    get_persister_service,
)

__all__ = [
    "SettingsDep",
    "PersisterServiceDep",
    "get_settings",
    "get_persister_service",
]
