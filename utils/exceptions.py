"""
Custom exception classes for request signing and the AGCOD service.
"""
from typing import Optional, Dict, Any


class SigningError(Exception):
    """Exception raised when a request cannot be signed."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        method: Optional[str] = None
    ):
        """
        Initialize signing error.

        Args:
            message: Error message
            url: URL of the request being signed if available
            method: HTTP method of the request if available
        """
        super().__init__(message)
        self.message = message
        self.url = url
        self.method = method


class AGCODAPIError(Exception):
    """Exception raised for AGCOD API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None
    ):
        """
        Initialize AGCOD API error.

        Args:
            message: Error message
            status_code: HTTP status code if available
            response_data: Decoded error body if available
            operation: AGCOD operation name (e.g. 'CreateGiftCard')
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        self.operation = operation

    @property
    def error_code(self) -> Optional[str]:
        """AGCOD error code from the response body, e.g. 'F100'."""
        if not self.response_data:
            return None
        return self.response_data.get('errorCode')


class ValidationError(ValueError):
    """Exception raised for invalid inputs and preconditions."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None
    ):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation if available
            value: Invalid value if available
        """
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value
