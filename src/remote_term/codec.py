"""Gzip detection and decompression."""

import gzip
import zlib

from .errors import DecodeError

GZIP_MAGIC = b"\x1f\x8b"


def is_gzip(data: bytes) -> bool:
    """Return True if *data* starts with the gzip magic bytes."""
    return data[:2] == GZIP_MAGIC


def gunzip(data: bytes) -> bytes:
    """Decompress a gzip payload.

    Args:
        data: Gzip-compressed bytes

    Returns:
        Decompressed bytes

    Raises:
        DecodeError: If the payload is not valid gzip
    """
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"Failed to decompress gzip payload: {e}") from e


def maybe_gunzip(data: bytes) -> bytes:
    """Decompress *data* only when it carries the gzip magic prefix."""
    if is_gzip(data):
        return gunzip(data)
    return data
