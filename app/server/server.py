from typing import Optional

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.dependencies.rate_limits import setup_rate_limiter
from api.responses import IndentedJSONResponse, http_exception_handler
from api.router import api_router
from infrastructure.configuration import Settings
from infrastructure.logging import get_module_logger
from infrastructure.persistence import KeyValueStore
from infrastructure.services import get_settings
from modules.persister import PersisterService
from server.lifespan import lifespan
from server.middleware import RequestContextMiddleware

logger = get_module_logger()


def create_app(store: KeyValueStore, settings: Optional[Settings] = None) -> FastAPI:
    """Build the persister application around an open store.

    The store is owned by the caller; the application never closes it.

    Args:
        store: The open store records are appended to and enumerated from.
        settings: Settings instance. Defaults to the cached application settings.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="kryptograf-persister",
        version=settings.GIT_SHA,
        lifespan=lifespan,
        default_response_class=IndentedJSONResponse,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.persister = PersisterService(
        store,
        max_surrogate_attempts=settings.storage.MAX_SURROGATE_ATTEMPTS,
    )

    setup_rate_limiter(app)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_middleware(RequestContextMiddleware)
    app.include_router(api_router)

    logger.debug("application_created", db_file=getattr(store, "path", None))
    return app
