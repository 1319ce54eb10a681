"""Fetcher for terms served over HTTP."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

import httpx

from ..config import HttpOptions, validate_options
from ..errors import CacheControlError, TransportError, UnexpectedResponseError
from ..models import ConditionalResult, Version
from ..storage.s3_client import normalize_etag, quote_etag
from . import http_cache
from .base import Fetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpState:
    """Fetcher state for one HTTP term.

    Attributes:
        url: URL the term is downloaded from
        http_cache: Schedule the next refresh from caching headers
        min_refresh_interval: Floor for cache-driven refresh delays (seconds)
        conditional: Use If-None-Match downloads keyed on the ETag
        timeout: Request timeout in seconds
        headers: Extra request headers
    """

    url: str
    http_cache: bool = False
    min_refresh_interval: float = 300.0
    conditional: bool = False
    timeout: float = 30.0
    headers: Dict[str, str] = field(default_factory=dict)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HttpFetcher(Fetcher):
    """Download a term with a plain GET.

    Without ``conditional`` the version is the current wall-clock time, so
    every cycle downloads. With ``conditional`` the ETag of the previous
    response is sent as If-None-Match and a 304 skips the download.

    With ``http_cache`` a response lacking a usable Cache-Control max-age
    still succeeds; the next refresh is scheduled at ``min_refresh_interval``.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the fetcher.

        Args:
            transport: Optional httpx transport (for tests or custom networking)
        """
        super().__init__()
        self._transport = transport

    def init(self, options: Union[HttpOptions, Dict[str, Any]]) -> HttpState:
        opts = validate_options(HttpOptions, options)
        return HttpState(
            url=opts.url,
            http_cache=opts.http_cache,
            min_refresh_interval=opts.min_refresh_interval,
            conditional=opts.conditional,
            timeout=opts.timeout,
            headers=dict(opts.headers),
        )

    async def current_version(self, state: HttpState) -> Tuple[str, HttpState]:
        return _timestamp(), state

    async def download(self, state: HttpState, version: Optional[Version]) -> bytes:
        logger.info(f"Downloading remote term from {state.url}")
        response = await self._get(state, {})
        self._check_status(state, response)
        self._schedule(state, response)
        return response.content

    def supports_conditional(self, state: HttpState) -> bool:
        return state.conditional

    async def download_if_changed(
        self, state: HttpState, version: Optional[Version]
    ) -> ConditionalResult:
        headers = {}
        if isinstance(version, str) and version:
            headers["If-None-Match"] = quote_etag(version)

        response = await self._get(state, headers)
        if response.status_code == 304:
            logger.info(f"{state.url} not modified (etag={version})")
            self._schedule(state, response)
            return ConditionalResult.not_modified(version)

        self._check_status(state, response)
        self._schedule(state, response)
        new_version = normalize_etag(response.headers.get("etag")) or _timestamp()
        return ConditionalResult.updated(response.content, new_version)

    async def _get(self, state: HttpState, extra_headers: Dict[str, str]) -> httpx.Response:
        headers = {**state.headers, **extra_headers}
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=state.timeout, follow_redirects=True
            ) as client:
                return await client.get(state.url, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {state.url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to connect to {state.url}: {e}") from e

    def _check_status(self, state: HttpState, response: httpx.Response) -> None:
        if response.status_code >= 300:
            raise UnexpectedResponseError(
                f"HTTP {response.status_code} from {state.url}: {response.text}",
                status_code=response.status_code,
            )
        logger.info(
            f"Downloaded remote term from {state.url} with status {response.status_code}"
        )

    def _schedule(self, state: HttpState, response: httpx.Response) -> None:
        if not state.http_cache:
            return

        try:
            delay = float(http_cache.refresh_interval(response.headers))
        except CacheControlError as e:
            logger.warning(
                f"{e} for {state.url}; using min refresh interval "
                f"{state.min_refresh_interval}s"
            )
            delay = state.min_refresh_interval

        delay = max(delay, state.min_refresh_interval)
        if self.schedule_update(delay):
            logger.info(f"Next refresh of {state.url} in {delay:.0f}s")
