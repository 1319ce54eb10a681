"""S3/S3-compatible object store client with per-call region override."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import (
    FetchError,
    NotFoundError,
    NotModifiedError,
    TransportError,
    UnexpectedResponseError,
)
from ..models import ObjectVersionEntry

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchVersion", "NoSuchBucket", "NotFound"}
_NOT_MODIFIED_CODES = {"304", "NotModified"}


def normalize_etag(etag: Optional[str]) -> Optional[str]:
    """Strip whitespace and surrounding quotes from an ETag."""
    if etag is None:
        return None
    return etag.strip().strip('"')


def quote_etag(etag: str) -> str:
    """Quote an ETag for an If-None-Match header."""
    etag = etag.strip()
    if etag.startswith('"') and etag.endswith('"'):
        return etag
    return f'"{etag}"'


@dataclass
class S3Object:
    """A downloaded object.

    Attributes:
        body: Object content
        etag: Normalized ETag
        version_id: Version id, if the bucket is versioned
    """

    body: bytes
    etag: Optional[str] = None
    version_id: Optional[str] = None


def translate_error(error: Exception, bucket: str, key: str) -> FetchError:
    """Map a botocore exception onto the fetch error taxonomy.

    Args:
        error: Exception raised by boto3
        bucket: Bucket the request targeted
        key: Key the request targeted

    Returns:
        FetchError subclass instance (not raised)
    """
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = str(details.get("Code", ""))
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

        if code in _NOT_MODIFIED_CODES or status == 304:
            return NotModifiedError(f"s3://{bucket}/{key} not modified")
        if code in _NOT_FOUND_CODES or status == 404:
            return NotFoundError(f"could not find s3://{bucket}/{key}")
        return UnexpectedResponseError(details.get("Message") or str(error), status_code=status)

    if isinstance(error, BotoCoreError):
        return TransportError(str(error))

    return TransportError(f"Unknown error: {error!r}")


class S3Client:
    """Thin async wrapper over boto3's S3 client.

    boto3 calls are blocking, so they run in the default executor. One boto3
    client is created lazily per region; every call names the region it
    targets.
    """

    def __init__(self, endpoint_url: Optional[str] = None):
        """Initialize the client.

        Args:
            endpoint_url: Endpoint of an S3-compatible store; None for AWS
        """
        self.endpoint_url = endpoint_url or None
        self._clients: Dict[str, Any] = {}

    def client_for(self, region: str) -> Any:
        """Return the boto3 client for *region*, creating it on first use."""
        client = self._clients.get(region)
        if client is None:
            client = boto3.client("s3", region_name=region, endpoint_url=self.endpoint_url)
            self._clients[region] = client
        return client

    async def list_object_versions(
        self, bucket: str, key: str, region: str
    ) -> List[ObjectVersionEntry]:
        """List every version of *key*, in the order the store returns them.

        Args:
            bucket: Bucket name
            key: Object key (used as prefix; other keys are filtered out)
            region: Region to send the request to

        Returns:
            Version entries for exactly *key*

        Raises:
            FetchError: If the listing fails
        """
        loop = asyncio.get_event_loop()
        client = self.client_for(region)

        def _list() -> List[Dict[str, Any]]:
            paginator = client.get_paginator("list_object_versions")
            versions: List[Dict[str, Any]] = []
            for page in paginator.paginate(Bucket=bucket, Prefix=key):
                versions.extend(page.get("Versions", []))
            return versions

        try:
            versions = await loop.run_in_executor(None, _list)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, bucket, key) from e

        logger.debug(f"Listed {len(versions)} versions under s3://{bucket}/{key} in {region}")

        return [
            ObjectVersionEntry(
                key=v["Key"],
                version_id=v.get("VersionId"),
                etag=normalize_etag(v.get("ETag")),
                is_latest=bool(v.get("IsLatest", False)),
                last_modified=v.get("LastModified"),
            )
            for v in versions
            if v.get("Key") == key
        ]

    async def get_object(
        self,
        bucket: str,
        key: str,
        region: str,
        version_id: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> S3Object:
        """Download an object.

        Args:
            bucket: Bucket name
            key: Object key
            region: Region to send the request to
            version_id: Exact version to fetch; latest when None
            if_none_match: Quoted ETag for a conditional request

        Returns:
            The downloaded object

        Raises:
            NotModifiedError: If *if_none_match* matches the current object
            FetchError: If the download fails
        """
        loop = asyncio.get_event_loop()
        client = self.client_for(region)

        params: Dict[str, Any] = {"Bucket": bucket, "Key": key}
        if version_id and version_id != "null":
            params["VersionId"] = version_id
        if if_none_match:
            params["IfNoneMatch"] = if_none_match

        logger.debug(f"GET s3://{bucket}/{key} in {region} (version={version_id})")

        def _get() -> S3Object:
            response = client.get_object(**params)
            return S3Object(
                body=response["Body"].read(),
                etag=normalize_etag(response.get("ETag")),
                version_id=response.get("VersionId"),
            )

        try:
            return await loop.run_in_executor(None, _get)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, bucket, key) from e
