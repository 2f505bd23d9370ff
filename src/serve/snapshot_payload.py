"""Aggregate snapshot payloads handed to consumers.

A snapshot carries either a merged value or the error that ended its
poll pass. Serialization is deferred until the consumer asks for bytes,
and a failed pass surfaces its error at that point.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import math
from typing import Protocol

from core.errors import ConfluxError
from core.types import CanonicalValue


class SnapshotMarshaler(Protocol):
    """Capability to produce serialized configuration bytes."""

    def marshal(self) -> bytes:
        """Return serialized bytes or raise the producing error."""
        ...


@dataclass(frozen=True)
class AggregateSnapshot:
    """Merged configuration value or the failure of one poll pass."""

    value: CanonicalValue = None
    error: ConfluxError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def marshal(self) -> bytes:
        """Render the merged value as compact JSON.

        Returns:
            UTF-8 JSON bytes with sorted keys.

        Raises:
            ConfluxError: The error recorded for a failed pass.
        """
        if self.error is not None:
            raise self.error
        return encode_canonical_json(self.value)


def failure_snapshot(error: ConfluxError) -> AggregateSnapshot:
    return AggregateSnapshot(value=None, error=error)


def encode_canonical_json(value: CanonicalValue) -> bytes:
    """Serialize a canonical value.

    Integral floats are written as JSON integers.
    """
    try:
        payload = json.dumps(
            _restore_integers(value),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except ValueError as error:
        raise ConfluxError(
            f"Merged configuration cannot be serialized as JSON: {error}. "
            "Remove .inf or .nan values from YAML sources."
        ) from error
    return payload.encode("utf-8")


def _restore_integers(value: CanonicalValue) -> object:
    if isinstance(value, dict):
        return {key: _restore_integers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_restore_integers(item) for item in value]
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value
