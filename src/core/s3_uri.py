"""S3 URI parsing helpers.

This module parses ``s3://bucket/key`` shorthand used in source lists.
It keeps URI validation behavior consistent with descriptor validation.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import S3_URI_SCHEME
from core.errors import ConfluxConfigError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 object location."""

    bucket: str
    key: str


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 object URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and key pair.

    Raises:
        ConfluxConfigError: If the URI has no scheme, bucket or key.
    """
    if not uri.startswith(S3_URI_SCHEME):
        _raise_uri_error(uri)
    stripped_uri = uri.removeprefix(S3_URI_SCHEME)
    if "/" not in stripped_uri:
        _raise_uri_error(uri)
    bucket, key = stripped_uri.split("/", 1)
    if not bucket or not key:
        _raise_uri_error(uri)
    return S3Location(bucket=bucket, key=key)


def _raise_uri_error(uri: str) -> None:
    raise ConfluxConfigError(
        f"Invalid S3 URI '{uri}': expected s3://bucket/key. "
        "Provide both bucket and object key."
    )
