"""
Standardized error codes for the catalog query layer
"""
from enum import Enum


class ErrorCode(Enum):
    """Standardized error codes"""

    # Retryable errors (1000-1999)
    EXTERNAL_API_RATE_LIMIT = "RETRY_1004"
    TEMPORARY_SERVICE_UNAVAILABLE = "RETRY_1005"
    AUTHENTICATION_EXPIRED = "RETRY_1006"

    # Fatal errors (2000-2999)
    INVALID_CONFIGURATION = "FATAL_2005"
    RESOURCE_NOT_FOUND = "FATAL_2006"
    SIGNING_FAILED = "FATAL_2007"
    CONTINUATION_TOKEN_MISSING = "FATAL_2008"
    INVALID_PAGE_REQUEST = "FATAL_2009"

    @property
    def is_retryable(self) -> bool:
        """Check if error is retryable"""
        return self.value.startswith("RETRY_")

    @property
    def is_fatal(self) -> bool:
        """Check if error is fatal"""
        return self.value.startswith("FATAL_")


class SystemError(Exception):
    """Base exception with error code"""

    def __init__(self, error_code: ErrorCode, message: str, details: dict = None):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(f"{error_code.value}: {message}")

    @property
    def retryable(self) -> bool:
        return self.error_code.is_retryable

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization"""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.error_code.is_retryable,
            "fatal": self.error_code.is_fatal
        }


class RetryableError(SystemError):
    """Error the caller may retry once the condition clears"""
    pass


class FatalError(SystemError):
    """Error that should not be retried"""
    pass
