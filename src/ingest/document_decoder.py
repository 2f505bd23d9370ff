"""Configuration document decoding.

This module turns raw JSON or YAML object bodies into canonical values.
Both formats end up with the same value kinds: every number becomes a
float so fragments written in either format merge without int/float
mismatches.
"""

from __future__ import annotations

import json
from typing import cast

import yaml

from core.errors import ConfluxDecodeError, ConfluxNormalizeError
from core.types import CanonicalValue, SourceFormat

_TAG_PREFIX = "tag:yaml.org,2002:"
_INT_TAG = f"{_TAG_PREFIX}int"
_FLOAT_TAG = f"{_TAG_PREFIX}float"
_BOOL_TAG = f"{_TAG_PREFIX}bool"
_NULL_TAG = f"{_TAG_PREFIX}null"


def decode_document(
    body: bytes,
    source_format: SourceFormat,
    source_uri: str,
) -> dict[str, CanonicalValue]:
    """Decode an object body into a canonical mapping.

    Args:
        body: Raw object bytes.
        source_format: JSON or YAML.
        source_uri: Source identifier used in error messages.

    Returns:
        Canonical mapping for the document root.

    Raises:
        ConfluxDecodeError: If the body is not a valid document of the format.
        ConfluxNormalizeError: If a YAML node cannot be represented.
    """
    parser_name = source_format.name
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as error:
        raise ConfluxDecodeError(
            f"Failed to decode {parser_name} for {source_uri}: body is not valid UTF-8 ({error})."
        ) from error
    if source_format is SourceFormat.JSON:
        value = _decode_json(text, source_uri)
    elif source_format is SourceFormat.YAML:
        value = _decode_yaml(text, source_uri)
    else:
        raise ConfluxDecodeError(
            f"Unknown parser for {source_uri}: {source_format.value}. Set parser to json or yaml."
        )
    if not isinstance(value, dict):
        raise ConfluxDecodeError(
            f"Failed to decode {parser_name} for {source_uri}: expected a mapping at the "
            f"document root, got {_kind_name(value)}."
        )
    return value


def _decode_json(text: str, source_uri: str) -> CanonicalValue:
    try:
        return cast(
            CanonicalValue,
            json.loads(text, parse_int=float, parse_constant=_reject_json_constant),
        )
    except json.JSONDecodeError as error:
        raise ConfluxDecodeError(
            f"Failed to decode JSON for {source_uri}: {error.msg} at line {error.lineno} "
            f"column {error.colno}. Fix the JSON syntax and re-upload the object."
        ) from error
    except RecursionError as error:
        raise ConfluxDecodeError(_too_deep_message("JSON", source_uri)) from error
    except ValueError as error:
        raise ConfluxDecodeError(f"Failed to decode JSON for {source_uri}: {error}.") from error


def _too_deep_message(parser_name: str, source_uri: str) -> str:
    return (
        f"Failed to decode {parser_name} for {source_uri}: document nesting is too deep. "
        "Flatten the document and re-upload the object."
    )


def _reject_json_constant(name: str) -> float:
    raise ValueError(f"non-standard constant '{name}' is not valid JSON")


def _decode_yaml(text: str, source_uri: str) -> CanonicalValue:
    try:
        root = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as error:
        raise ConfluxDecodeError(
            f"Failed to decode YAML for {source_uri}: {error}. "
            "Fix the YAML syntax and re-upload the object."
        ) from error
    except RecursionError as error:
        raise ConfluxDecodeError(_too_deep_message("YAML", source_uri)) from error
    if root is None:
        raise ConfluxDecodeError(
            f"Failed to decode YAML for {source_uri}: document is empty."
        )
    try:
        return normalize_yaml_node(root)
    except ConfluxNormalizeError as error:
        raise ConfluxNormalizeError(
            f"Failed to convert decoded YAML for {source_uri} to canonical values: {error}"
        ) from error
    except RecursionError as error:
        raise ConfluxDecodeError(_too_deep_message("YAML", source_uri)) from error


def normalize_yaml_node(node: yaml.Node) -> CanonicalValue:
    """Convert a composed YAML node tree into a canonical value.

    Args:
        node: Root node returned by ``yaml.compose``.

    Returns:
        Canonical value equivalent to what a JSON decoder would produce.

    Raises:
        ConfluxNormalizeError: If the tree holds an unrepresentable node.
    """
    return _YamlNormalizer().normalize(node)


class _YamlNormalizer:
    """Single-use converter; tracks the active node path to reject alias cycles."""

    def __init__(self) -> None:
        self._constructor = yaml.constructor.SafeConstructor()
        self._active_nodes: set[int] = set()

    def normalize(self, node: yaml.Node) -> CanonicalValue:
        node_id = id(node)
        if node_id in self._active_nodes:
            raise ConfluxNormalizeError(f"recursive alias at {node.start_mark}")
        self._active_nodes.add(node_id)
        try:
            if isinstance(node, yaml.MappingNode):
                return self._normalize_mapping(node)
            if isinstance(node, yaml.SequenceNode):
                return [self.normalize(item) for item in node.value]
            if isinstance(node, yaml.ScalarNode):
                return self._normalize_scalar(node)
            raise ConfluxNormalizeError(
                f"unexpected YAML node kind {type(node).__name__} at {node.start_mark}"
            )
        finally:
            self._active_nodes.discard(node_id)

    def _normalize_mapping(self, node: yaml.MappingNode) -> dict[str, CanonicalValue]:
        try:
            self._constructor.flatten_mapping(node)
        except yaml.constructor.ConstructorError as error:
            raise ConfluxNormalizeError(str(error)) from error
        mapping: dict[str, CanonicalValue] = {}
        for key_node, value_node in node.value:
            if not isinstance(key_node, yaml.ScalarNode):
                raise ConfluxNormalizeError(
                    f"mapping keys must be scalars, got {type(key_node).__name__} "
                    f"at {key_node.start_mark}"
                )
            mapping[key_node.value] = self.normalize(value_node)
        return mapping

    def _normalize_scalar(self, node: yaml.ScalarNode) -> CanonicalValue:
        try:
            if node.tag in (_INT_TAG, _FLOAT_TAG):
                return self._parse_number(node)
            if node.tag == _BOOL_TAG:
                return bool(self._constructor.construct_yaml_bool(node))
        except (IndexError, KeyError, ValueError) as error:
            raise ConfluxNormalizeError(
                f"cannot parse {node.tag.removeprefix(_TAG_PREFIX)} scalar "
                f"'{node.value}' at {node.start_mark}"
            ) from error
        if node.tag == _NULL_TAG:
            return None
        return node.value

    def _parse_number(self, node: yaml.ScalarNode) -> float:
        if node.tag == _INT_TAG:
            return float(self._constructor.construct_yaml_int(node))
        return float(self._constructor.construct_yaml_float(node))


def _kind_name(value: CanonicalValue) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "sequence"
    return type(value).__name__
