"""Exception types raised by the crawl engine."""

from enum import Enum
from typing import Optional


class CrawlerError(Exception):
    """Base class for all crawl engine errors."""


class InvalidUrl(CrawlerError):
    """Raised when a URL or href cannot be resolved to a usable URL."""

    def __init__(self, url: str, reason: str = "malformed URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class FetchErrorKind(str, Enum):
    """Classification of a failed fetch attempt."""

    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    HTTP_ERROR = "http_error"
    OTHER = "other"


class FetchError(CrawlerError):
    """Raised by a fetch strategy when a document could not be retrieved.

    Every kind is retryable by the retry controller.
    """

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.message = message
        self.url = url
        self.status_code = status_code
        self.attempts = 1
        super().__init__(message)

    @classmethod
    def http_error(cls, url: str, status_code: int) -> "FetchError":
        return cls(
            FetchErrorKind.HTTP_ERROR,
            f"HTTP {status_code} for {url}",
            url=url,
            status_code=status_code,
        )


class AuthErrorReason(str, Enum):
    """Why authentication could not be resolved."""

    MISSING_CREDENTIALS = "missing_credentials"
    LOGIN_FAILED = "login_failed"


class AuthError(CrawlerError):
    """Raised when an auth context cannot be produced.

    Fatal to the session: no fetch is issued without resolved credentials.
    """

    def __init__(self, reason: AuthErrorReason, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)
