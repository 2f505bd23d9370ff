"""Object store access for configuration sources.

This module defines the two operations trackers need from a blob store
and adapts a boto3 S3 client to them. Credentials and transport retries
stay with boto3 and botocore.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from core.config import ConfluxConfig
from core.errors import ConfluxDependencyError, ConfluxFetchError, ConfluxProbeError


@dataclass(frozen=True)
class StoredObject:
    """Downloaded object body with its modification time."""

    body: bytes
    modified_at: datetime


class ObjectStoreClient(Protocol):
    """Minimal blob store capability consumed by source trackers."""

    def head_modified_at(self, bucket: str, key: str) -> datetime:
        """Return the object's last-modified time without reading its body."""
        ...

    def get_object(self, bucket: str, key: str) -> StoredObject:
        """Download the object body and its last-modified time."""
        ...


class S3ObjectStore:
    """boto3-backed object store client."""

    def __init__(self, s3_client: Any) -> None:
        self._s3_client = s3_client

    def head_modified_at(self, bucket: str, key: str) -> datetime:
        """Probe object metadata with a HEAD request.

        Raises:
            ConfluxProbeError: If the request fails or has no timestamp.
        """
        try:
            response = self._s3_client.head_object(Bucket=bucket, Key=key)
        except Exception as error:
            raise ConfluxProbeError(
                f"Unable to get attributes for s3://{bucket}/{key}: {error}. "
                "Check that the object exists and credentials allow s3:GetObject."
            ) from error
        return _require_last_modified(response, bucket, key, ConfluxProbeError)

    def get_object(self, bucket: str, key: str) -> StoredObject:
        """Download an object body.

        Raises:
            ConfluxFetchError: If the request or body read fails.
        """
        try:
            response = self._s3_client.get_object(Bucket=bucket, Key=key)
        except Exception as error:
            raise ConfluxFetchError(
                f"Failed to get object s3://{bucket}/{key}: {error}. "
                "Check that the object exists and credentials allow s3:GetObject."
            ) from error
        stream = response["Body"]
        try:
            body = stream.read()
        except Exception as error:
            raise ConfluxFetchError(
                f"Failed to read body of s3://{bucket}/{key}: {error}."
            ) from error
        finally:
            stream.close()
        modified_at = _require_last_modified(response, bucket, key, ConfluxFetchError)
        return StoredObject(body=body, modified_at=modified_at)


def _require_last_modified(
    response: dict[str, Any],
    bucket: str,
    key: str,
    error_type: type[ConfluxProbeError] | type[ConfluxFetchError],
) -> datetime:
    last_modified = response.get("LastModified")
    if not isinstance(last_modified, datetime):
        raise error_type(
            f"Response for s3://{bucket}/{key} has no LastModified timestamp."
        )
    if last_modified.tzinfo is None:
        return last_modified.replace(tzinfo=timezone.utc)
    return last_modified


def create_s3_client(config: ConfluxConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        ConfluxDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise ConfluxDependencyError(
            "S3 sources require boto3, but it is not installed. "
            "Install boto3 to poll s3:// configuration objects."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
