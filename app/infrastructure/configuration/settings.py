"""Persister configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from infrastructure.configuration.infrastructure import (
    ServerSettings,
    StorageSettings,
)


class Settings(BaseSettings):
    """Persister configuration settings - main aggregator.

    Aggregates the domain-specific settings into a single configuration object:

    - **server**: listener protocol, bind address and timeouts
    - **storage**: persistence file, encryption key source and engine limits

    Environment Variables:
        PREFIX: Environment prefix, empty in production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        db_file = settings.storage.DB_FILE
        addr = settings.server.ADDRESS
        ```
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    server: ServerSettings
    storage: StorageSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "server": ServerSettings,
            "storage": StorageSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create the singleton settings instance
settings = Settings()
