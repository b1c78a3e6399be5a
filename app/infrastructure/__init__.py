"""Infrastructure modules for the kryptograf persister.

Centralized infrastructure components:
- configuration: Settings management (settings, ServerSettings, StorageSettings)
- logging: Structured logging (configure_logging, get_module_logger)
- operations: Operation results and statuses
- persistence: Encrypted transactional key-value store
- services: Dependency injection services (SettingsDep, get_settings)
"""

# Configuration
from infrastructure.configuration import settings

# Logging
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Logging
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
