"""Public SDK surface for Conflux.

This module provides a stable import path for library users.
It re-exports the aggregator, its config and the value models.
"""

from __future__ import annotations

from core.config import ConfluxConfig
from core.errors import (
    ConfluxConfigError,
    ConfluxDecodeError,
    ConfluxError,
    ConfluxFetchError,
    ConfluxLifecycleError,
    ConfluxMergeError,
    ConfluxNormalizeError,
    ConfluxProbeError,
)
from core.types import CanonicalValue, SourceDescriptor, SourceFormat, SourceSnapshot
from ingest.source_tracker import SourceTracker
from serve.config_aggregator import ConfigAggregator, build_aggregator
from serve.snapshot_payload import AggregateSnapshot, SnapshotMarshaler
from store.object_store import ObjectStoreClient, S3ObjectStore, StoredObject, create_s3_client
from transforms.structural_merge import merge_values

__all__ = [
    "AggregateSnapshot",
    "CanonicalValue",
    "ConfigAggregator",
    "ConfluxConfig",
    "ConfluxConfigError",
    "ConfluxDecodeError",
    "ConfluxError",
    "ConfluxFetchError",
    "ConfluxLifecycleError",
    "ConfluxMergeError",
    "ConfluxNormalizeError",
    "ConfluxProbeError",
    "ObjectStoreClient",
    "S3ObjectStore",
    "SnapshotMarshaler",
    "SourceDescriptor",
    "SourceFormat",
    "SourceSnapshot",
    "SourceTracker",
    "StoredObject",
    "build_aggregator",
    "create_s3_client",
    "merge_values",
]
