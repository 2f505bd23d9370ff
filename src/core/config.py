"""Runtime configuration model for Conflux.

This module owns validation of the poll interval and the source list.
Other modules consume a typed config object instead of raw mappings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import os
from typing import Mapping, Sequence

from core.constants import (
    CONFIG_OBJECTS_FIELD,
    CONFIG_POLL_INTERVAL_FIELD,
    DEFAULT_POLL_INTERVAL,
    ENV_S3_PROFILE,
    ENV_S3_REGION,
)
from core.durations import parse_duration
from core.errors import ConfluxConfigError
from core.s3_uri import parse_s3_uri
from core.types import SourceDescriptor, parse_source_format, resolve_descriptor


@dataclass(frozen=True)
class ConfluxConfig:
    """Validated aggregator configuration.

    Attributes:
        poll_interval: Strictly positive delay between poll passes.
        sources: Sources in merge precedence order, formats resolved.
        s3_region: Optional AWS region for the S3 client.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    poll_interval: timedelta
    sources: tuple[SourceDescriptor, ...]
    s3_region: str | None = None
    s3_profile: str | None = None

    @classmethod
    def build(
        cls,
        poll_interval: str,
        sources: Sequence[SourceDescriptor],
        s3_region: str | None = None,
        s3_profile: str | None = None,
    ) -> "ConfluxConfig":
        """Validate typed inputs into a config.

        Args:
            poll_interval: Duration string such as ``"30s"``.
            sources: Descriptors, format may be ``UNSPECIFIED``.
            s3_region: Optional region override.
            s3_profile: Optional profile override.

        Returns:
            A validated config object.

        Raises:
            ConfluxConfigError: If any value is invalid.
        """
        interval = _parse_poll_interval(poll_interval)
        if len(sources) == 0:
            raise ConfluxConfigError(
                "objects must be non-empty to use the S3 provider. Add at least one source."
            )
        resolved_sources = tuple(
            resolve_descriptor(source.bucket, source.key, source.format, index)
            for index, source in enumerate(sources)
        )
        return cls(
            poll_interval=interval,
            sources=resolved_sources,
            s3_region=s3_region,
            s3_profile=s3_profile,
        )

    @classmethod
    def from_mapping(
        cls,
        payload: Mapping[str, object],
        s3_region: str | None = None,
        s3_profile: str | None = None,
    ) -> "ConfluxConfig":
        """Build config from a decoded configuration mapping.

        Args:
            payload: Mapping with ``pollInterval`` and ``objects`` fields.
            s3_region: Optional region override.
            s3_profile: Optional profile override.

        Returns:
            A validated config object.

        Raises:
            ConfluxConfigError: If the mapping is malformed or invalid.
        """
        raw_interval = payload.get(CONFIG_POLL_INTERVAL_FIELD, DEFAULT_POLL_INTERVAL)
        if not isinstance(raw_interval, str):
            raise ConfluxConfigError(
                f"Config field '{CONFIG_POLL_INTERVAL_FIELD}' must be a duration string "
                f"such as '30s', got {type(raw_interval).__name__}."
            )
        raw_objects = payload.get(CONFIG_OBJECTS_FIELD, [])
        if not isinstance(raw_objects, Sequence) or isinstance(raw_objects, (str, bytes)):
            raise ConfluxConfigError(
                f"Config field '{CONFIG_OBJECTS_FIELD}' must be a list of objects, "
                f"got {type(raw_objects).__name__}."
            )
        sources = [_parse_object_entry(entry, index) for index, entry in enumerate(raw_objects)]
        return cls.build(raw_interval, sources, s3_region=s3_region, s3_profile=s3_profile)

    @classmethod
    def from_env(cls, payload: Mapping[str, object]) -> "ConfluxConfig":
        """Build config from a mapping plus S3 session environment variables.

        Args:
            payload: Mapping with ``pollInterval`` and ``objects`` fields.

        Returns:
            A validated config object.
        """
        return cls.from_mapping(
            payload,
            s3_region=os.getenv(ENV_S3_REGION) or None,
            s3_profile=os.getenv(ENV_S3_PROFILE) or None,
        )


def _parse_poll_interval(raw_value: str) -> timedelta:
    interval = parse_duration(raw_value)
    if interval <= timedelta(0):
        raise ConfluxConfigError(
            f"poll interval must be greater than 0, got '{raw_value}'. "
            "Set pollInterval to a positive duration such as '30s'."
        )
    return interval


def _parse_object_entry(entry: object, index: int) -> SourceDescriptor:
    """Parse one ``objects`` entry into an unresolved descriptor.

    An entry names its object either with ``bucket`` and ``key`` or with a
    single ``uri`` of the form ``s3://bucket/key``.
    """
    if not isinstance(entry, Mapping):
        raise ConfluxConfigError(
            f"object[{index}] must be a mapping with bucket and key, "
            f"got {type(entry).__name__}."
        )
    raw_parser = entry.get("parser")
    if raw_parser is not None and not isinstance(raw_parser, str):
        raise ConfluxConfigError(f"object[{index}] field 'parser' must be a string.")
    source_format = parse_source_format(raw_parser)
    raw_uri = entry.get("uri")
    if raw_uri is not None:
        if not isinstance(raw_uri, str):
            raise ConfluxConfigError(f"object[{index}] field 'uri' must be a string.")
        location = parse_s3_uri(raw_uri)
        return SourceDescriptor(bucket=location.bucket, key=location.key, format=source_format)
    bucket = entry.get("bucket", "")
    key = entry.get("key", "")
    if not isinstance(bucket, str) or not isinstance(key, str):
        raise ConfluxConfigError(f"object[{index}] fields 'bucket' and 'key' must be strings.")
    return SourceDescriptor(bucket=bucket, key=key, format=source_format)
