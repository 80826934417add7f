"""Exception types raised across the sync pipeline."""

from typing import Optional


class ShowSyncError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ShowSyncError):
    """Raised when required settings are missing or invalid."""


class TransportError(ShowSyncError):
    """Raised when a page fetch fails (transport error or non-2xx status)."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class UnsafeURLError(TransportError):
    """Raised when a URL is refused by the fetch policy before any request is made."""

    def __init__(self, url: str, message: str):
        super().__init__(url, message)


class FatalFetchError(TransportError):
    """Raised when the first listing page of a site cannot be fetched."""

    @classmethod
    def from_transport(cls, error: TransportError) -> "FatalFetchError":
        return cls(error.url, str(error), status_code=error.status_code)


class StoreError(ShowSyncError):
    """Raised when a record store call fails."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.status_code = status_code
