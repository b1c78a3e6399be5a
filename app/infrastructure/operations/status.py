"""Operation status enumeration.

Status codes for operation results, used to classify outcomes of operations
across the application so the HTTP layer can pick a response code.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        INVALID_INPUT: Client-attributable error (malformed request body)
        STORAGE_ERROR: The store failed while reading or writing
        INTERNAL_ERROR: Unexpected server-side failure
    """

    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    STORAGE_ERROR = "storage_error"
    INTERNAL_ERROR = "internal_error"
