"""Shared typed models.

This module defines the source descriptor, the canonical value model and
per-source snapshots used by the ingest, transform and serve layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Union

from core.constants import JSON_EXTENSIONS, S3_URI_SCHEME, YAML_EXTENSIONS
from core.errors import ConfluxConfigError

CanonicalValue = Union[
    None,
    bool,
    float,
    str,
    list["CanonicalValue"],
    dict[str, "CanonicalValue"],
]


class SourceFormat(Enum):
    """Serialization format of one configuration object."""

    UNSPECIFIED = "unspecified"
    JSON = "json"
    YAML = "yaml"


_FORMAT_NAMES: dict[str, SourceFormat] = {
    "json": SourceFormat.JSON,
    "yaml": SourceFormat.YAML,
    "yml": SourceFormat.YAML,
}


@dataclass(frozen=True)
class SourceDescriptor:
    """One configuration object location and how to parse it."""

    bucket: str
    key: str
    format: SourceFormat = SourceFormat.UNSPECIFIED

    @property
    def uri(self) -> str:
        return f"{S3_URI_SCHEME}{self.bucket}/{self.key}"


@dataclass(frozen=True)
class SourceSnapshot:
    """Last successfully decoded value of one source.

    Attributes:
        descriptor: Source the value was read from.
        value: Canonical document value.
        observed_modified_at: Store-reported modification time of the value.
    """

    descriptor: SourceDescriptor
    value: CanonicalValue
    observed_modified_at: datetime


def parse_source_format(raw_value: str | None) -> SourceFormat:
    """Parse an explicit parser name.

    Args:
        raw_value: Parser name such as ``"json"`` or ``"YAML"``; blank means unset.

    Returns:
        Parsed format, ``UNSPECIFIED`` when no name is given.

    Raises:
        ConfluxConfigError: If the name is not a supported parser.
    """
    if raw_value is None:
        return SourceFormat.UNSPECIFIED
    normalized_value = raw_value.strip().lower()
    if not normalized_value:
        return SourceFormat.UNSPECIFIED
    source_format = _FORMAT_NAMES.get(normalized_value)
    if source_format is None:
        raise ConfluxConfigError(
            f"'{normalized_value}' is not a valid parser. Use one of: json, yaml."
        )
    return source_format


def infer_source_format(key: str) -> SourceFormat:
    """Infer a parser from an object key extension.

    Args:
        key: Object key, for example ``"dynamic/tls.yaml"``.

    Returns:
        Inferred concrete format.

    Raises:
        ConfluxConfigError: If the extension is not recognized.
    """
    suffix = PurePosixPath(key).suffix.lower()
    if suffix in JSON_EXTENSIONS:
        return SourceFormat.JSON
    if suffix in YAML_EXTENSIONS:
        return SourceFormat.YAML
    raise ConfluxConfigError(
        f"Cannot infer parser for key {key}. "
        "Use a .json, .yaml or .yml extension or set the parser explicitly."
    )


def resolve_descriptor(
    bucket: str,
    key: str,
    source_format: SourceFormat,
    index: int,
) -> SourceDescriptor:
    """Validate one source and resolve its concrete format.

    Args:
        bucket: Bucket name.
        key: Object key.
        source_format: Explicit format or ``UNSPECIFIED``.
        index: Zero-based position in the source list, used in messages.

    Returns:
        Descriptor whose format is JSON or YAML.

    Raises:
        ConfluxConfigError: If bucket or key is empty or the format is unknown.
    """
    if not key:
        raise ConfluxConfigError(
            f"object[{index}] cannot have empty key (bucket '{bucket}'). Set a non-empty key."
        )
    if not bucket:
        raise ConfluxConfigError(
            f"object[{index}] cannot have empty bucket name (key '{key}'). Set a bucket."
        )
    if source_format is SourceFormat.UNSPECIFIED:
        try:
            source_format = infer_source_format(key)
        except ConfluxConfigError as error:
            raise ConfluxConfigError(f"object[{index}]: {error}") from error
    return SourceDescriptor(bucket=bucket, key=key, format=source_format)
