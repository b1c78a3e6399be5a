from contextlib import asynccontextmanager
from typing import AsyncIterator, TYPE_CHECKING

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def _list_configs(settings: "Settings", log: BoundLogger) -> None:
    config_settings: dict[str, list[object]] = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    log.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            log.info("configuration_loaded", config_setting=key, keys=value)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = app.state.settings
    persister = app.state.persister

    logger.info("application_startup", key_count=persister.store.length())
    _list_configs(settings, logger)

    yield

    logger.info("application_shutdown")
