"""Exception hierarchy for remote term fetching and refreshing."""

from typing import List, Optional, Tuple


class RemoteTermError(Exception):
    """Base class for all remote term errors."""

    pass


class ConfigError(RemoteTermError):
    """Invalid term or fetcher options. Only raised at initialization."""

    pass


class FetchError(RemoteTermError):
    """A source could not produce a version or payload."""

    pass


class TransportError(FetchError):
    """Network or otherwise unclassified failure talking to a source."""

    pass


class NotFoundError(FetchError):
    """The key or version does not exist at the source."""

    pass


class UnexpectedResponseError(FetchError):
    """The source answered with a non-success status.

    The message carries the response body (or service error message) verbatim.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotModifiedError(FetchError):
    """The source reported 304 Not Modified for a conditional request."""

    pass


class FailoverExhaustedError(FetchError):
    """The primary endpoint and every failover endpoint failed.

    Attributes:
        attempts: (target, error) pairs in the order they were tried
    """

    def __init__(self, message: str, attempts: List[Tuple[str, Exception]]):
        super().__init__(message)
        self.attempts = attempts


class NoPreviousVersionError(FetchError):
    """There is no version older than the current one."""

    pass


class NotSupportedError(FetchError):
    """The fetcher does not implement an optional capability."""

    pass


class DecodeError(RemoteTermError):
    """The payload could not be decompressed or deserialized."""

    pass


class CacheControlError(RemoteTermError):
    """Cache-Control headers could not be turned into a refresh interval."""

    pass
