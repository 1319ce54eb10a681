"""remote-term: an in-process cache of a remote blob.

Keeps a read-optimized copy of a large immutable object stored in S3 (or an
S3-compatible store) or behind an HTTP endpoint, refreshed in the background
with version diffing, failover and version fallback.
"""

__version__ = "0.1.0"

from .config import HttpOptions, S3Options, Settings, StaticOptions, TermOptions, load_term_options
from .errors import (
    CacheControlError,
    ConfigError,
    DecodeError,
    FailoverExhaustedError,
    FetchError,
    NoPreviousVersionError,
    NotFoundError,
    NotModifiedError,
    NotSupportedError,
    RemoteTermError,
    TransportError,
    UnexpectedResponseError,
)
from .fetchers import Fetcher, HttpFetcher, S3Fetcher, StaticFetcher
from .models import CachedTerm, CycleEvent, CycleOutcome, ObjectVersion
from .store import KeyedStore, LocalSlot, TermRegistry, TermStore, registry
from .term import RemoteTerm

__all__ = [
    "CacheControlError",
    "CachedTerm",
    "ConfigError",
    "CycleEvent",
    "CycleOutcome",
    "DecodeError",
    "FailoverExhaustedError",
    "FetchError",
    "Fetcher",
    "HttpFetcher",
    "HttpOptions",
    "KeyedStore",
    "LocalSlot",
    "NoPreviousVersionError",
    "NotFoundError",
    "NotModifiedError",
    "NotSupportedError",
    "ObjectVersion",
    "RemoteTerm",
    "RemoteTermError",
    "S3Fetcher",
    "S3Options",
    "Settings",
    "StaticFetcher",
    "StaticOptions",
    "TermOptions",
    "TermRegistry",
    "TermStore",
    "TransportError",
    "UnexpectedResponseError",
    "load_term_options",
    "registry",
]
