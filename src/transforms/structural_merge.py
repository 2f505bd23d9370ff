"""Structural merge of canonical values.

Values are folded left to right into an empty mapping. Mappings merge
key by key, sequences at the same position concatenate, and any other
pairing is replaced by the later value. Inputs are never mutated.
"""

from __future__ import annotations

from typing import Sequence

from core.errors import ConfluxMergeError
from core.types import CanonicalValue


def merge_values(values: Sequence[CanonicalValue]) -> CanonicalValue:
    """Merge canonical values in precedence order.

    Args:
        values: Values ordered from lowest to highest precedence.

    Returns:
        Merged value sharing no containers with the inputs.

    Raises:
        ConfluxMergeError: If any value is outside the canonical model.
    """
    merged: CanonicalValue = {}
    for index, value in enumerate(values):
        _validate_canonical(value, f"source[{index}]")
        merged = _merge_pair(merged, value)
    return merged


def _merge_pair(earlier: CanonicalValue, later: CanonicalValue) -> CanonicalValue:
    if isinstance(earlier, dict) and isinstance(later, dict):
        merged = dict(earlier)
        for key, later_value in later.items():
            if key in merged:
                merged[key] = _merge_pair(merged[key], later_value)
            else:
                merged[key] = _copy_value(later_value)
        return merged
    if isinstance(earlier, list) and isinstance(later, list):
        return earlier + [_copy_value(item) for item in later]
    return _copy_value(later)


def _copy_value(value: CanonicalValue) -> CanonicalValue:
    if isinstance(value, dict):
        return {key: _copy_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_value(item) for item in value]
    return value


def _validate_canonical(value: object, path: str) -> None:
    """Reject values a decoder could never have produced.

    Raises:
        ConfluxMergeError: On int numbers, non-string keys or foreign types.
    """
    if value is None or isinstance(value, (bool, float, str)):
        return
    if isinstance(value, list):
        for index, item in enumerate(value):
            _validate_canonical(item, f"{path}[{index}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ConfluxMergeError(
                    f"Cannot merge {path}: mapping key {key!r} is {type(key).__name__}, "
                    "expected string."
                )
            _validate_canonical(item, f"{path}.{key}")
        return
    raise ConfluxMergeError(
        f"Cannot merge {path}: {type(value).__name__} is not a canonical value kind."
    )
