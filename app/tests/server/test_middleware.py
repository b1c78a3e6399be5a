"""Tests for server.middleware."""

import pytest
import structlog
from starlette.requests import Request
from starlette.responses import Response

from server.middleware import CORRELATION_ID_HEADER, RequestContextMiddleware


def make_request(headers=None):
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": headers or [],
        "client": ("10.0.0.7", 41000),
        "server": ("127.0.0.1", 11185),
    }
    return Request(scope)


@pytest.mark.unit
class TestRequestContextMiddleware:
    """Test suite for RequestContextMiddleware."""

    @pytest.mark.asyncio
    async def test_binds_request_context_without_stale_values(self):
        """Context left over from earlier work is cleared before the request is bound."""
        structlog.contextvars.bind_contextvars(stale="left over")
        seen = {}

        async def call_next(_request):
            seen.update(structlog.contextvars.get_contextvars())
            return Response()

        middleware = RequestContextMiddleware(app=None)
        await middleware.dispatch(make_request(), call_next)

        assert "stale" not in seen
        assert seen["request_path"] == "/"
        assert seen["request_method"] == "GET"
        assert seen["remote_addr"] == "10.0.0.7:41000"

    @pytest.mark.asyncio
    async def test_echoes_correlation_id(self):
        """The caller's correlation id is returned on the response."""

        async def call_next(_request):
            return Response()

        middleware = RequestContextMiddleware(app=None)
        response = await middleware.dispatch(
            make_request([(b"x-correlation-id", b"req-42")]), call_next
        )

        assert response.headers[CORRELATION_ID_HEADER] == "req-42"
        assert response.headers["accept"] == "application/json; charset=utf-8"
