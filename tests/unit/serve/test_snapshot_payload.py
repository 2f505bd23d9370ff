"""Unit tests for aggregate snapshot serialization."""

from __future__ import annotations

import pytest

from core.errors import ConfluxDecodeError, ConfluxError
from serve.snapshot_payload import AggregateSnapshot, failure_snapshot


def test_marshal_renders_sorted_compact_json() -> None:
    """Snapshots should serialize with sorted keys and no whitespace."""
    snapshot = AggregateSnapshot(value={"b": "x", "a": [True, None]})

    assert snapshot.marshal() == b'{"a":[true,null],"b":"x"}'


def test_marshal_writes_integral_numbers_without_fraction() -> None:
    """Whole-number floats should be rendered as JSON integers."""
    snapshot = AggregateSnapshot(value={"port": 8080.0, "weight": 1.5})

    assert snapshot.marshal() == b'{"port":8080,"weight":1.5}'


def test_marshal_raises_recorded_error() -> None:
    """A failure snapshot should surface its error at serialization time."""
    error = ConfluxDecodeError("Failed to decode YAML for s3://configs/tls.yaml")

    with pytest.raises(ConfluxDecodeError) as raised:
        failure_snapshot(error).marshal()

    assert raised.value is error


def test_marshal_rejects_non_finite_numbers() -> None:
    """Infinite values have no JSON form."""
    with pytest.raises(ConfluxError, match="cannot be serialized"):
        AggregateSnapshot(value={"limit": float("inf")}).marshal()
