from starlette.middleware.base import BaseHTTPMiddleware

from api.responses import ACCEPT_HEADER, JSON_CONTENT_TYPE
from infrastructure.logging import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
    get_module_logger,
)

logger = get_module_logger()

CORRELATION_ID_HEADER = "X-Correlation-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request context for logging and sets the JSON headers on every response."""

    async def dispatch(self, request, call_next):
        # Start from a clean context so nothing bound earlier on this task leaks in
        clear_request_context()
        client = request.client
        remote_addr = f"{client.host}:{client.port}" if client else "unknown"

        with bind_request_context(
            correlation_id=request.headers.get(CORRELATION_ID_HEADER),
            request_path=request.url.path,
            request_method=request.method,
            remote_addr=remote_addr,
        ):
            logger.debug("request_received")
            response = await call_next(request)
            response.headers[ACCEPT_HEADER] = JSON_CONTENT_TYPE
            correlation_id = get_correlation_id()
            if correlation_id:
                response.headers[CORRELATION_ID_HEADER] = correlation_id
            logger.info("request_completed", status_code=response.status_code)
            return response
