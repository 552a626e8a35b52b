class ApiError(Exception):
    """Base exception for all API client errors."""


class ApiNetworkError(ApiError):
    """Raised when the server cannot be reached or the request times out."""


class ApiResponseError(ApiError):
    """Raised when the server answers with an error status or ``success: false``."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiResponseError):
    """Raised on HTTP 401 after the persisted credentials have been cleared."""
