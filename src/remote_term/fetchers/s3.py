"""Fetcher for S3 and S3-compatible object stores.

Works with versioned and non-versioned buckets. The version of the term is
the ``(etag, version_id)`` pair of the entry flagged as latest in the
object's version listing; non-versioned buckets report the ``"null"``
version id, so only the ETag distinguishes them.

Failover is tried in a fixed order: the primary bucket in its region, the
primary bucket in each failover region, then each failover bucket in its
own region. Failover buckets must use the same key layout as the primary.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from ..codec import gunzip
from ..config import S3Options, settings, validate_options
from ..errors import (
    FailoverExhaustedError,
    NoPreviousVersionError,
    NotFoundError,
    NotModifiedError,
)
from ..models import (
    ConditionalResult,
    ObjectVersion,
    ObjectVersionEntry,
    RetryInstruction,
    Version,
)
from ..storage.s3_client import S3Client, quote_etag
from .base import Fetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class FailoverTarget:
    """One endpoint of a failover chain."""

    bucket: str
    region: str
    kind: str  # "primary", "region" or "bucket"

    def __str__(self) -> str:
        return f"s3://{self.bucket} ({self.region})"


@dataclass(frozen=True)
class S3State:
    """Fetcher state for one S3 term.

    Attributes:
        bucket: Primary bucket
        key: Object key
        region: Primary region
        failover_regions: Regions tried for the primary bucket, in order
        failover_buckets: (bucket, region) pairs tried after the regions
        pinned_version_id: Configured version to serve instead of the latest
        compression: "gzip" or None
        version_fallback: Retry older versions when a payload fails to decode
        conditional: Use If-None-Match downloads
        version_id: Version id currently resolved
        etag: ETag currently resolved
    """

    bucket: str
    key: str
    region: str
    failover_regions: Tuple[str, ...] = ()
    failover_buckets: Tuple[Tuple[str, str], ...] = ()
    pinned_version_id: Optional[str] = None
    compression: Optional[str] = None
    version_fallback: bool = False
    conditional: bool = False
    version_id: Optional[str] = None
    etag: Optional[str] = None

    @property
    def url(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    @property
    def version(self) -> ObjectVersion:
        return ObjectVersion(etag=self.etag, version_id=self.version_id)


def failover_chain(state: S3State) -> List[FailoverTarget]:
    """Build the ordered list of endpoints to try for *state*."""
    chain = [FailoverTarget(state.bucket, state.region, "primary")]
    chain.extend(FailoverTarget(state.bucket, region, "region") for region in state.failover_regions)
    chain.extend(
        FailoverTarget(bucket, region, "bucket") for bucket, region in state.failover_buckets
    )
    return chain


def failover_on_error(error: Exception) -> bool:
    """Whether *error* should move on to the next endpoint.

    A 304 is a successful answer to a conditional request, not a fault.
    """
    return not isinstance(error, NotModifiedError)


class S3Fetcher(Fetcher):
    """Fetch a term from S3 with region/bucket failover and version history."""

    def __init__(self, client: Optional[S3Client] = None):
        """Initialize the fetcher.

        Args:
            client: Object store client; created from the options when omitted
        """
        super().__init__()
        self.client = client

    def init(self, options: Union[S3Options, Dict[str, Any]]) -> S3State:
        opts = validate_options(S3Options, options)

        if self.client is None:
            self.client = S3Client(opts.endpoint_url or settings.REMOTE_TERM_S3_ENDPOINT_URL)

        return S3State(
            bucket=opts.bucket,
            key=opts.key,
            region=opts.region,
            failover_regions=tuple(opts.failover_regions),
            failover_buckets=tuple((fb.bucket, fb.region) for fb in opts.failover_buckets),
            pinned_version_id=opts.version_id,
            compression=opts.compression,
            version_fallback=opts.version_fallback,
            conditional=opts.conditional,
            version_id=opts.version_id,
        )

    async def with_failover(
        self,
        state: S3State,
        request: Callable[[str, str], Awaitable[T]],
        should_failover: Callable[[Exception], bool] = failover_on_error,
    ) -> T:
        """Run *request* against the failover chain until one endpoint succeeds.

        Args:
            state: Fetcher state
            request: Coroutine function taking (bucket, region)
            should_failover: Predicate deciding whether an error moves on

        Returns:
            The first successful result

        Raises:
            FailoverExhaustedError: If every endpoint failed
            Exception: The primary's error when no failover is configured,
                or any error the predicate refuses to fail over on
        """
        primary, *alternates = failover_chain(state)

        try:
            return await request(primary.bucket, primary.region)
        except Exception as e:
            if not alternates or not should_failover(e):
                raise
            logger.error(
                f"Failed to fetch {state.key} from {primary}: {e}; attempting failover"
            )
            attempts: List[Tuple[str, Exception]] = [(str(primary), e)]

        for target in alternates:
            logger.info(f"Trying failover {target.kind} {target} for {state.key}")
            try:
                return await request(target.bucket, target.region)
            except Exception as e:
                if not should_failover(e):
                    raise
                logger.error(f"Failed to fetch {state.key} from failover {target}: {e}")
                attempts.append((str(target), e))

        message = "All buckets failed" if state.failover_buckets else "All regions failed"
        raise FailoverExhaustedError(message, attempts)

    async def list_versions(self, state: S3State) -> List[ObjectVersionEntry]:
        """List all versions of the term's key, with failover."""
        return await self.with_failover(
            state,
            lambda bucket, region: self.client.list_object_versions(bucket, state.key, region),
        )

    async def current_version(self, state: S3State) -> Tuple[ObjectVersion, S3State]:
        entries = await self.list_versions(state)

        if state.pinned_version_id:
            entry = next((e for e in entries if e.version_id == state.pinned_version_id), None)
        else:
            entry = next((e for e in entries if e.is_latest), None)

        if entry is None:
            raise NotFoundError(f"could not find {state.url}")

        logger.info(f"Found latest version of {state.url}: {entry.version}")
        return entry.version, replace(state, version_id=entry.version_id, etag=entry.etag)

    async def download(self, state: S3State, version: Optional[Version]) -> bytes:
        version_id = version.version_id if isinstance(version, ObjectVersion) else None
        logger.info(f"Downloading {state.url} (version={version_id or 'latest'})")

        obj = await self.with_failover(
            state,
            lambda bucket, region: self.client.get_object(
                bucket, state.key, region, version_id=version_id
            ),
        )
        logger.debug(f"Downloaded {len(obj.body)} bytes from {state.url}")
        return self._decompress(state, obj.body)

    def supports_conditional(self, state: S3State) -> bool:
        return state.conditional

    async def download_if_changed(
        self, state: S3State, version: Optional[Version]
    ) -> ConditionalResult:
        etag = version.etag if isinstance(version, ObjectVersion) else None
        if_none_match = quote_etag(etag) if etag else None

        try:
            obj = await self.with_failover(
                state,
                lambda bucket, region: self.client.get_object(
                    bucket,
                    state.key,
                    region,
                    version_id=state.pinned_version_id,
                    if_none_match=if_none_match,
                ),
            )
        except NotModifiedError:
            logger.info(f"{state.url} not modified (etag={etag})")
            return ConditionalResult.not_modified(version)

        new_version = ObjectVersion(etag=obj.etag, version_id=obj.version_id)
        # previous_version resolves relative to the downloaded version
        new_state = replace(state, version_id=obj.version_id, etag=obj.etag)
        return ConditionalResult.updated(
            self._decompress(state, obj.body), new_version, new_state
        )

    async def previous_version(self, state: S3State) -> S3State:
        entries = await self.list_versions(state)
        entries = sorted(entries, key=lambda e: e.last_modified or _EPOCH, reverse=True)

        current_id = state.version_id
        if current_id is None:
            current_id = next((e.version_id for e in entries if e.is_latest), None)

        index = next((i for i, e in enumerate(entries) if e.version_id == current_id), None)
        if index is None or index + 1 >= len(entries):
            raise NoPreviousVersionError(
                f"no version of {state.url} older than {current_id}"
            )

        previous = entries[index + 1]
        logger.info(f"Previous version of {state.url} is {previous.version}")
        return replace(state, version_id=previous.version_id, etag=previous.etag)

    async def on_decode_error(self, state: S3State) -> RetryInstruction:
        if not state.version_fallback:
            return RetryInstruction.proceed()

        previous = await self.previous_version(state)
        return RetryInstruction.retry(previous.version, previous)

    def _decompress(self, state: S3State, body: bytes) -> bytes:
        if state.compression == "gzip":
            return gunzip(body)
        return body
