"""Custom exceptions for manuals."""


class ManualsError(Exception):
    """Base exception for manuals."""
    pass


class RequestError(ManualsError):
    """Request construction or transport failure (DNS, refused, timeout)."""
    pass


class APIError(ManualsError):
    """Non-2xx response from the Manuals API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"API error ({status_code}): {message}")


class DecodeError(ManualsError):
    """Response body is not JSON of the expected shape."""
    pass


class ValidationError(ManualsError):
    """Local precondition failure, raised before any request is sent."""
    pass


class ConfigError(ValidationError):
    """Configuration errors."""
    pass


class FilesystemError(ManualsError):
    """Download destination cannot be created or written."""
    pass
