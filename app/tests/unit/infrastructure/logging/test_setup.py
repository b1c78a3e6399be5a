"""Unit tests for infrastructure.logging.setup module.

Tests cover:
- configure_logging in development and production modes
- get_logger and get_module_logger context binding

TestConfigureLogging runs first on purpose: the module logger tests must still
capture events after configure_logging() has replaced the configuration.
"""

import pytest
from structlog.testing import capture_logs

from infrastructure.logging import configure_logging, get_logger, get_module_logger


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging function."""

    def test_returns_logger(self):
        """Returns a usable logger in development mode."""
        logger = configure_logging(log_level="DEBUG", is_production=False)

        assert hasattr(logger, "info")

    def test_production_mode(self):
        """Returns a usable logger in production mode."""
        logger = configure_logging(log_level="INFO", is_production=True)

        assert hasattr(logger, "info")


@pytest.mark.unit
class TestModuleLoggers:
    """Test suite for get_logger and get_module_logger."""

    def test_get_module_logger_binds_component(self):
        """The calling module is bound as the component."""
        logger = get_module_logger()

        with capture_logs() as logs:
            logger.info("something_happened")

        assert logs[0]["event"] == "something_happened"
        assert "component" in logs[0]

    def test_get_logger_with_name(self):
        """An explicit name is bound as logger_name."""
        logger = get_logger("persister")

        with capture_logs() as logs:
            logger.warning("named_event")

        assert logs[0]["logger_name"] == "persister"
        assert logs[0]["log_level"] == "warning"
