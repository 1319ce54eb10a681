"""Storage clients for remote sources."""

from .s3_client import S3Client, S3Object, normalize_etag, quote_etag, translate_error

__all__ = ["S3Client", "S3Object", "normalize_etag", "quote_etag", "translate_error"]
