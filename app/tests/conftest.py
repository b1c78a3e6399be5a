import sys
from pathlib import Path

# Ensure the application package root is on sys.path so importing application
# modules (e.g. `infrastructure.configuration`) works during pytest collection
# regardless of the directory pytest is invoked from.
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest  # noqa: E402
import structlog  # noqa: E402

from infrastructure.configuration import (  # noqa: E402
    ServerSettings,
    Settings,
    StorageSettings,
)
from infrastructure.persistence import EncryptedFileStore  # noqa: E402

TEST_ENCRYPTION_KEY = "Z6pT9Iw+YTiRtyIuNjn3q0vwc6BSZpPFpZn7sH606xU"
OTHER_ENCRYPTION_KEY = "3q1pVmG1b2GJ7fXcvhU0y9yG7hKQp9cJXo0f4o8v2Vw="


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "persister.db"


@pytest.fixture
def store(db_path):
    """An open EncryptedFileStore on a fresh file, closed after the test."""
    store = EncryptedFileStore(db_path, TEST_ENCRYPTION_KEY)
    yield store
    store.close()


@pytest.fixture
def test_settings(db_path):
    """Settings bound to a temporary persistence file and an ephemeral port."""
    return Settings(
        server=ServerSettings(PROTOCOL="tcp4", ADDRESS="127.0.0.1:0"),
        storage=StorageSettings(DB_FILE=str(db_path)),
    )


class FixedGenerator:
    """Surrogate id generator returning a scripted sequence of ids."""

    def __init__(self, ids):
        self._ids = iter(ids)
        self.calls = 0

    def next_id(self):
        self.calls += 1
        return next(self._ids)


@pytest.fixture
def fixed_generator():
    return FixedGenerator


@pytest.fixture
def encryption_key():
    return TEST_ENCRYPTION_KEY


@pytest.fixture
def other_encryption_key():
    return OTHER_ENCRYPTION_KEY


@pytest.fixture(autouse=True)
def _restore_structlog_config():
    """Restore the structlog configuration after each test.

    Module loggers are cached on first use and keep a reference to the
    processor list configured at that time. capture_logs() swaps processors
    inside that same list, so a test that calls configure_logging() would
    otherwise leave later captures empty.
    """
    baseline = structlog.get_config()
    try:
        yield
    finally:
        structlog.configure(**baseline)
