"""Custom exceptions for the catalog query service."""

from typing import Optional

from common_py.error_codes import ErrorCode, FatalError, RetryableError


class SigningError(FatalError):
    """Raised when a request cannot be OAuth1-signed from the given input."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(ErrorCode.SIGNING_FAILED, message, {"url": url})


class AuthenticationExpired(RetryableError):
    """Raised on HTTP 401 from the visual search API.

    Not retried inline; the token manager refreshes before the next call.
    """

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(ErrorCode.AUTHENTICATION_EXPIRED, message, {"url": url})


class ContinuationTokenMissing(FatalError):
    """Raised when a visual search page > 1 is requested without the image_cache handle."""

    def __init__(self, page_number: int):
        self.page_number = page_number
        super().__init__(
            ErrorCode.CONTINUATION_TOKEN_MISSING,
            f"Visual search page {page_number} requires the continuation handle "
            "returned by page 1; refusing to resend the image",
            {"page_number": page_number},
        )


class InvalidPageRequest(FatalError):
    """Raised when a page request is malformed for its listing mode."""

    def __init__(self, message: str, mode: Optional[str] = None, page_number: Optional[int] = None):
        self.mode = mode
        self.page_number = page_number
        super().__init__(
            ErrorCode.INVALID_PAGE_REQUEST,
            message,
            {"mode": mode, "page_number": page_number},
        )


class ListingUnavailable(RetryableError):
    """Raised when a listing page could not be fetched or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None, mode: Optional[str] = None):
        self.status_code = status_code
        self.mode = mode
        super().__init__(
            ErrorCode.TEMPORARY_SERVICE_UNAVAILABLE,
            message,
            {"status_code": status_code, "mode": mode},
        )


class PrimaryApiError(RetryableError):
    """Raised when the primary (OAuth1) API answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        error_code = (
            ErrorCode.EXTERNAL_API_RATE_LIMIT
            if status_code == 429
            else ErrorCode.TEMPORARY_SERVICE_UNAVAILABLE
        )
        super().__init__(error_code, message, {"status_code": status_code, "url": url})


class StoreNotSelected(FatalError):
    """Raised when an operation needs a selected store and none is persisted."""

    def __init__(self, message: str = "No store selected"):
        super().__init__(ErrorCode.INVALID_CONFIGURATION, message)


class StoreNotFound(FatalError):
    """Raised when the selected store is absent from the store config response."""

    def __init__(self, country_code: str, store_code: str):
        self.country_code = country_code
        self.store_code = store_code
        super().__init__(
            ErrorCode.RESOURCE_NOT_FOUND,
            f"Store {country_code}/{store_code} not found in store config",
            {"country_code": country_code, "store_code": store_code},
        )
