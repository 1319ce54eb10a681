"""Tests for the boto3-backed S3 client."""

import io
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from remote_term.errors import (
    NotFoundError,
    NotModifiedError,
    TransportError,
    UnexpectedResponseError,
)
from remote_term.storage.s3_client import (
    S3Client,
    normalize_etag,
    quote_etag,
    translate_error,
)


def client_error(code, status=None, message="boom", operation="GetObject"):
    response = {"Error": {"Code": code, "Message": message}}
    if status is not None:
        response["ResponseMetadata"] = {"HTTPStatusCode": status}
    return ClientError(response, operation)


class TestEtags:
    """Test ETag helpers."""

    def test_normalize_strips_quotes_and_whitespace(self):
        assert normalize_etag(' "abc123" ') == "abc123"
        assert normalize_etag("abc123") == "abc123"
        assert normalize_etag(None) is None

    def test_quote(self):
        assert quote_etag("abc") == '"abc"'
        assert quote_etag('"abc"') == '"abc"'


class TestTranslateError:
    """Test mapping botocore errors to fetch errors."""

    def test_no_such_key(self):
        error = translate_error(client_error("NoSuchKey", 404), "b", "k")
        assert isinstance(error, NotFoundError)
        assert str(error) == "could not find s3://b/k"

    def test_not_modified(self):
        error = translate_error(client_error("304", 304), "b", "k")
        assert isinstance(error, NotModifiedError)

    def test_unexpected_response_keeps_message(self):
        error = translate_error(
            client_error("AccessDenied", 403, message="Access Denied"), "b", "k"
        )
        assert isinstance(error, UnexpectedResponseError)
        assert str(error) == "Access Denied"
        assert error.status_code == 403

    def test_transport_error(self):
        error = translate_error(
            EndpointConnectionError(endpoint_url="https://s3.example.com"), "b", "k"
        )
        assert isinstance(error, TransportError)


class TestS3Client:
    """Test S3Client class."""

    @pytest.fixture
    def mock_boto3(self):
        """Create mock boto3 client."""
        with patch("remote_term.storage.s3_client.boto3") as mock:
            mock_client = MagicMock()
            mock.client.return_value = mock_client
            yield mock

    def test_one_client_per_region(self, mock_boto3):
        """Test boto3 clients are created once per region."""
        client = S3Client(endpoint_url="https://r2.example.com")

        client.client_for("us-east-1")
        client.client_for("us-east-1")
        client.client_for("eu-west-1")

        assert mock_boto3.client.call_count == 2
        mock_boto3.client.assert_any_call(
            "s3", region_name="eu-west-1", endpoint_url="https://r2.example.com"
        )

    def test_empty_endpoint_means_aws(self, mock_boto3):
        """Test an empty endpoint is passed to boto3 as None."""
        S3Client(endpoint_url="").client_for("us-east-1")

        mock_boto3.client.assert_called_once_with(
            "s3", region_name="us-east-1", endpoint_url=None
        )

    @pytest.mark.asyncio
    async def test_list_object_versions(self, mock_boto3):
        """Test listing versions filters other keys and normalizes ETags."""
        paginator = mock_boto3.client.return_value.get_paginator.return_value
        paginator.paginate.return_value = [
            {
                "Versions": [
                    {"Key": "my-key", "VersionId": "v2", "ETag": '"e2"', "IsLatest": True},
                    {"Key": "my-key.bak", "VersionId": "x", "ETag": '"ex"', "IsLatest": True},
                ]
            },
            {"Versions": [{"Key": "my-key", "VersionId": "v1", "ETag": '"e1"', "IsLatest": False}]},
        ]

        entries = await S3Client().list_object_versions("bucket", "my-key", "us-east-1")

        assert [e.version_id for e in entries] == ["v2", "v1"]
        assert entries[0].etag == "e2"
        assert entries[0].is_latest is True
        paginator.paginate.assert_called_once_with(Bucket="bucket", Prefix="my-key")

    @pytest.mark.asyncio
    async def test_list_object_versions_error(self, mock_boto3):
        """Test listing errors are translated."""
        paginator = mock_boto3.client.return_value.get_paginator.return_value
        paginator.paginate.side_effect = client_error("NoSuchBucket", 404)

        with pytest.raises(NotFoundError):
            await S3Client().list_object_versions("bucket", "my-key", "us-east-1")

    @pytest.mark.asyncio
    async def test_get_object(self, mock_boto3):
        """Test downloading an exact version."""
        s3 = mock_boto3.client.return_value
        s3.get_object.return_value = {
            "Body": io.BytesIO(b"payload"),
            "ETag": '"e2"',
            "VersionId": "v2",
            "ResponseMetadata": {"HTTPStatusCode": 200, "HTTPHeaders": {"etag": '"e2"'}},
        }

        obj = await S3Client().get_object("bucket", "my-key", "us-east-1", version_id="v2")

        assert obj.body == b"payload"
        assert obj.etag == "e2"
        assert obj.version_id == "v2"
        s3.get_object.assert_called_once_with(Bucket="bucket", Key="my-key", VersionId="v2")

    @pytest.mark.asyncio
    async def test_get_object_null_version_and_conditional(self, mock_boto3):
        """Test the "null" version id is dropped and If-None-Match is passed."""
        s3 = mock_boto3.client.return_value
        s3.get_object.return_value = {"Body": io.BytesIO(b"x")}

        await S3Client().get_object(
            "bucket", "my-key", "us-east-1", version_id="null", if_none_match='"e1"'
        )

        s3.get_object.assert_called_once_with(Bucket="bucket", Key="my-key", IfNoneMatch='"e1"')

    @pytest.mark.asyncio
    async def test_get_object_not_modified(self, mock_boto3):
        """Test a 304 surfaces as NotModifiedError."""
        mock_boto3.client.return_value.get_object.side_effect = client_error("304", 304)

        with pytest.raises(NotModifiedError):
            await S3Client().get_object("bucket", "my-key", "us-east-1", if_none_match='"e1"')
