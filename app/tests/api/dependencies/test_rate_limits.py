"""Tests for api.dependencies.rate_limits."""

from unittest.mock import Mock

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from api.dependencies import rate_limits


@pytest.fixture
def fresh_limiter():
    rate_limits.limiter.reset()
    yield rate_limits.limiter
    rate_limits.limiter.reset()


def test_get_limiter():
    """get_limiter returns the shared limiter."""
    assert rate_limits.get_limiter() is rate_limits.limiter


def test_setup_rate_limiter():
    """The limiter and its 429 handler are registered on the app."""
    app = FastAPI()

    rate_limits.setup_rate_limiter(app)

    assert app.state.limiter is rate_limits.limiter
    assert RateLimitExceeded in app.exception_handlers


@pytest.mark.asyncio
async def test_rate_limit_handler():
    """The handler answers 429 with an indented JSON message."""
    mock_request = Mock(spec=Request)
    mock_exception = Mock(spec=RateLimitExceeded)

    response = await rate_limits.rate_limit_handler(mock_request, mock_exception)

    assert isinstance(response, JSONResponse)
    assert response.status_code == 429
    assert response.body == b'{\n  "message": "Rate limit exceeded"\n}'


def test_system_endpoint_rate_limiting(client, fresh_limiter):
    """The /version route allows 50 calls per minute per client."""
    for _ in range(50):
        assert client.get("/version").status_code == 200

    response = client.get("/version")

    assert response.status_code == 429
    assert response.json() == {"message": "Rate limit exceeded"}


def test_resource_route_is_not_rate_limited(client, fresh_limiter):
    """The persister resource has no rate limit."""
    for _ in range(60):
        assert client.get("/").status_code == 200
