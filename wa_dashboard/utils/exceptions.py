from fastapi import HTTPException, status
from typing import Any, Dict, Optional


class BaseAPIException(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An error occurred",
        headers: Optional[Dict[str, Any]] = None,
        details: Optional[Any] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.details = details


class ConfigurationError(BaseAPIException):
    """Raised when a credential required by an operation is not configured."""

    def __init__(self, missing: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Service not configured: {missing}"
        )
        self.missing = missing


class ProviderError(BaseAPIException):
    """Raised when the WhatsApp Cloud API rejects a request or cannot be reached."""

    def __init__(self, detail: str = "Failed to send message", details: Optional[Any] = None):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            details=details
        )


class StoreError(BaseAPIException):
    """Raised when a read or write against the message store fails."""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )


class ValidationError(BaseAPIException):
    """Raised when a request is missing required fields."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )
