"""Custom exceptions for the Commons image search application."""


class CommonsAppError(Exception):
    """Base exception for Commons image search."""

    pass


class SourceApiError(CommonsAppError):
    """Exception raised when the Wikimedia Commons search call fails.

    Covers both a non-success HTTP status and an explicit ``error`` block in
    the returned document.
    """

    def __init__(self, message: str, status_code: int = 0, response_text: str = ""):
        self.message = message
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class NetworkError(SourceApiError):
    """Exception raised for network/connection errors reaching the search API."""

    pass


class ConfigurationError(CommonsAppError):
    """Exception raised for configuration errors."""

    pass


class ThumbnailFetchError(CommonsAppError):
    """A single thumbnail could not be fetched or decoded."""

    def __init__(self, position: int, url: str, reason: str):
        self.position = position
        self.url = url
        self.reason = reason
        super().__init__(f"Thumbnail {position + 1} failed ({url}): {reason}")
