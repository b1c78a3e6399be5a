"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common infrastructure dependencies.
"""

from typing import Annotated
from fastapi import Depends
from infrastructure.configuration import Settings
from infrastructure.services.providers import get_settings, get_persister_service
from modules.persister import PersisterService

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Persister service attached to app.state by create_app
PersisterServiceDep = Annotated[PersisterService, Depends(get_persister_service)]

__all__ = [
    "SettingsDep",
    "PersisterServiceDep",
]
