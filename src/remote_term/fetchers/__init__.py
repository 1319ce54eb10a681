"""Fetcher implementations for remote terms."""

from typing import Tuple

from pydantic import BaseModel

from ..config import TermOptions
from .base import Fetcher
from .http import HttpFetcher, HttpState
from .s3 import S3Fetcher, S3State, failover_chain
from .static import StaticFetcher, StaticState

FETCHERS = {
    "s3": S3Fetcher,
    "http": HttpFetcher,
    "static": StaticFetcher,
}


def build_fetcher(options: TermOptions) -> Tuple[Fetcher, BaseModel]:
    """Create the fetcher selected by *options*.

    Returns:
        Tuple of (fetcher, options for its ``init``)
    """
    fetcher_cls = FETCHERS[options.source]
    return fetcher_cls(), options.fetcher_options


__all__ = [
    "FETCHERS",
    "Fetcher",
    "HttpFetcher",
    "HttpState",
    "S3Fetcher",
    "S3State",
    "StaticFetcher",
    "StaticState",
    "build_fetcher",
    "failover_chain",
]
