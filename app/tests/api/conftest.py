"""Fixtures for HTTP route tests."""

import pytest
from fastapi.testclient import TestClient

from server.server import create_app


@pytest.fixture
def app(store, test_settings):
    return create_app(store, test_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
