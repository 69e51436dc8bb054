"""
Exceptions for fetch_curl.

Transfer failures are not raised; they are reported as a None result and
recorded on the builder as ``last_error``. These exceptions cover misuse and
invalid configuration only.
"""


class FetchCurlError(Exception):
    """Base class for fetch_curl errors."""


class HandleClosedError(FetchCurlError, RuntimeError):
    """Raised when a transfer is attempted on a handle that was already closed."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Curl handle has been closed (url={url})")


class ConfigError(FetchCurlError, ValueError):
    """Raised when a CurlConfig fails validation."""
