"""
Diagnostics API errors.

Every failure of a remote operation is raised as a subclass of APIError so
callers can render ``str(error)`` directly.
"""

from typing import Optional


class APIError(Exception):
    """Base exception for diagnostics backend errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(APIError):
    """Raised when the target URL cannot be built."""

    def __init__(self, url: str = ""):
        super().__init__(f"Invalid request URL: {url}" if url else "Invalid request URL")
        self.url = url


class InvalidResponseError(APIError):
    """Raised when a read endpoint fails or answers with a non-success status."""

    def __init__(self, message: str = "Invalid response from server", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class HTTPError(APIError):
    """Raised on a non-success status whose body is not a structured error."""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP error {status_code}")
        self.status_code = status_code


class ServerError(APIError):
    """Raised on a non-success status carrying an ``{"error": ...}`` payload."""

    def __init__(self, message: str, details: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.details = details
        self.status_code = status_code

    def __str__(self) -> str:
        return f"Server error: {self.message}"


class EncodingError(APIError):
    """Raised when a snapshot cannot be serialized to JSON."""

    def __init__(self, message: str = "Failed to encode request data"):
        super().__init__(message)


class DecodingError(APIError):
    """Raised when a response body does not match the expected shape."""

    def __init__(self, message: str = "Failed to decode response"):
        super().__init__(message)


class NetworkError(APIError):
    """Raised on transport failures (connection refused, timeout, DNS)."""

    def __init__(self, message: str = "Network error - check that the backend is running"):
        super().__init__(message)
