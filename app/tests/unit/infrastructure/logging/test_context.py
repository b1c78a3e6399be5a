"""Unit tests for infrastructure.logging.context module.

Tests cover:
- bind_request_context() context manager
- get_correlation_id()
- clear_request_context()
- Context cleanup
"""

import uuid

import pytest
import structlog

from infrastructure.logging.context import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_request_context()
    yield
    clear_request_context()


@pytest.mark.unit
class TestBindRequestContext:
    """Test suite for bind_request_context context manager."""

    def test_auto_generates_correlation_id(self):
        """Correlation ID is auto-generated if not provided."""
        with bind_request_context():
            uuid.UUID(get_correlation_id())

    def test_uses_provided_correlation_id(self):
        """A provided correlation ID is used as is."""
        with bind_request_context(correlation_id="req-123"):
            assert get_correlation_id() == "req-123"

    def test_binds_request_fields(self):
        """Path, method and remote address are bound to context."""
        with bind_request_context(
            request_path="/", request_method="PUT", remote_addr="127.0.0.1:5000"
        ):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["request_path"] == "/"
            assert ctx["request_method"] == "PUT"
            assert ctx["remote_addr"] == "127.0.0.1:5000"

    def test_omitted_fields_are_not_bound(self):
        """Fields left as None are not bound."""
        with bind_request_context():
            ctx = structlog.contextvars.get_contextvars()
            assert "request_path" not in ctx
            assert "remote_addr" not in ctx

    def test_binds_extra_context(self):
        """Extra keyword arguments are bound as well."""
        with bind_request_context(record_count=3):
            assert structlog.contextvars.get_contextvars()["record_count"] == 3

    def test_context_removed_on_exit(self):
        """Bound fields are removed when the block exits."""
        with bind_request_context(correlation_id="req-1", request_path="/"):
            pass

        assert get_correlation_id() is None
        assert "request_path" not in structlog.contextvars.get_contextvars()

    def test_context_removed_on_exception(self):
        """Bound fields are removed when the block raises."""
        with pytest.raises(ValueError):
            with bind_request_context(correlation_id="req-1"):
                raise ValueError("boom")

        assert get_correlation_id() is None


@pytest.mark.unit
def test_clear_request_context():
    """clear_request_context removes everything bound."""
    structlog.contextvars.bind_contextvars(correlation_id="leftover")

    clear_request_context()

    assert get_correlation_id() is None
