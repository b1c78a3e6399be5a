"""Operation result dataclass.

Uniform result type returned from operations across the application,
including status, data, and error information.
"""

from typing import Optional, Any
from dataclasses import dataclass

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Uniform result returned from operations.

    Attributes:
        status: OperationStatus -- high-level outcome
        message: str -- human-friendly message for logs and response bodies
        data: Optional[Any] -- optional payload (can be dict, list, or object)
        error_code: Optional[str] -- optional machine error code
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """Helper property to check if operation was successful.

        Returns:
            True if status is SUCCESS, False otherwise
        """
        return self.status == OperationStatus.SUCCESS

    @classmethod
    def success(
        cls, data: Optional[Any] = None, message: str = "ok"
    ) -> "OperationResult":
        """Create a SUCCESS OperationResult with optional data.

        Args:
            data: Optional payload to include with the result
            message: Human-friendly success message

        Returns:
            OperationResult with SUCCESS status
        """
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """Create an error OperationResult.

        Args:
            status: OperationStatus indicating error type
            message: Human-friendly error message
            error_code: Optional machine error code
            data: Optional payload to include with the error

        Returns:
            OperationResult with specified error status
        """
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            data=data,
        )

    @classmethod
    def invalid_input(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Create a client error result (the request must be fixed and resubmitted)."""
        return cls.error(OperationStatus.INVALID_INPUT, message, error_code)

    @classmethod
    def storage_error(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Create a storage failure result."""
        return cls.error(OperationStatus.STORAGE_ERROR, message, error_code)
