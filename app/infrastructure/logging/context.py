"""Request context binding for structured logging.

This module provides utilities for binding request-scoped context
to logs, enabling correlation IDs and request metadata to flow
through all log entries during a request lifecycle.

Usage:
    from infrastructure.logging import bind_request_context

    # In middleware or request handler
    with bind_request_context(request_method="PUT", request_path="/"):
        # All logs within this block will include the context
        logger.info("processing_request")

Dependencies:
    - structlog.contextvars
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    remote_addr: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind request-scoped context to all logs within the context manager.

    Args:
        correlation_id: Unique request identifier. Auto-generated if not provided.
        request_path: HTTP request path (e.g., "/").
        request_method: HTTP method (e.g., "GET", "PUT").
        remote_addr: Peer address of the client connection.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is automatically bound to structlog's context vars.

    Example:
        @app.middleware("http")
        async def logging_middleware(request: Request, call_next):
            with bind_request_context(
                correlation_id=request.headers.get("X-Correlation-ID"),
                request_path=request.url.path,
                request_method=request.method,
            ):
                return await call_next(request)
    """
    context: dict[str, Any] = {}

    context["correlation_id"] = correlation_id or str(uuid.uuid4())

    if request_path is not None:
        context["request_path"] = request_path

    if request_method is not None:
        context["request_method"] = request_method

    if remote_addr is not None:
        context["remote_addr"] = remote_addr

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    ctx = structlog.contextvars.get_contextvars()
    return ctx.get("correlation_id")


def clear_request_context() -> None:
    """Clear all request-scoped context from the logging context.

    The request middleware calls this before binding a new request so
    context bound earlier on the same task never leaks into its logs.
    """
    structlog.contextvars.clear_contextvars()
