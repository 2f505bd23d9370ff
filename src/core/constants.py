"""Core constants used across Conflux modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_POLL_INTERVAL = "300s"
DEFAULT_LOG_LEVEL = "INFO"
S3_URI_SCHEME = "s3://"
JSON_EXTENSIONS = (".json",)
YAML_EXTENSIONS = (".yaml", ".yml")
ENV_S3_REGION = "CONFLUX_S3_REGION"
ENV_S3_PROFILE = "CONFLUX_S3_PROFILE"
ENV_LOG_LEVEL = "CONFLUX_LOG_LEVEL"
CONFIG_POLL_INTERVAL_FIELD = "pollInterval"
CONFIG_OBJECTS_FIELD = "objects"
EMIT_RETRY_SECONDS = 0.1
