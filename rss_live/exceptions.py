from typing import Optional


class RSSLiveError(Exception):
    """Base class for all library errors."""


class RSSFetchError(RSSLiveError):
    """Raised when a feed cannot be retrieved (network error, bad status, timeout)."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class FormatError(RSSLiveError):
    """Raised when a payload arrived but is not in the expected shape."""


class ParseError(RSSLiveError):
    """Raised when a feed entry cannot be parsed into expected fields."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigError(RSSLiveError):
    """Raised for invalid configuration values."""
