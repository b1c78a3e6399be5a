"""
Factory functions for dependency injection.

Provides application-scoped providers for core infrastructure services.
"""

from functools import lru_cache

from fastapi import Request

from infrastructure.configuration import Settings
from modules.persister import PersisterService


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/version")
        def get_version(settings: SettingsDep):
            return {"version": settings.GIT_SHA}

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


def get_persister_service(request: Request) -> PersisterService:
    """
    Get the persister service bound to the running application.

    The service is created by the caller that owns the store and attached to
    ``app.state.persister`` by ``create_app``; there is one per process.

    Returns:
        PersisterService: The service wrapping the open store.
    """
    return request.app.state.persister
