"""Per-object change tracking.

A tracker wraps one configuration object. It answers "has the object
changed since the last good read?" with a metadata probe and replaces its
cached snapshot only after a fully successful fetch and decode.
"""

from __future__ import annotations

from core.errors import (
    ConfluxConfigError,
    ConfluxDecodeError,
    ConfluxFetchError,
    ConfluxProbeError,
)
from core.logging_config import get_logger
from core.types import CanonicalValue, SourceDescriptor, SourceFormat, SourceSnapshot
from ingest.document_decoder import decode_document
from store.object_store import ObjectStoreClient

logger = get_logger(__name__)


class SourceTracker:
    """Change detection and fetch-and-decode for one source object."""

    def __init__(self, descriptor: SourceDescriptor, store: ObjectStoreClient) -> None:
        if descriptor.format is SourceFormat.UNSPECIFIED:
            raise ConfluxConfigError(
                f"Source {descriptor.uri} has no resolved parser. "
                "Resolve the format before creating a tracker."
            )
        self._descriptor = descriptor
        self._store = store
        self._snapshot: SourceSnapshot | None = None

    @property
    def descriptor(self) -> SourceDescriptor:
        return self._descriptor

    @property
    def snapshot(self) -> SourceSnapshot | None:
        return self._snapshot

    @property
    def value(self) -> CanonicalValue:
        """Cached canonical value, ``None`` before the first good read."""
        if self._snapshot is None:
            return None
        return self._snapshot.value

    def has_changed(self) -> bool:
        """Return whether the stored object is newer than the cached value.

        A tracker that has never read its object reports a change without
        contacting the store.

        Returns:
            True if the store's last-modified time is strictly later.

        Raises:
            ConfluxProbeError: If the metadata probe fails. A failed probe
                never reports a change.
        """
        if self._snapshot is None:
            return True
        try:
            modified_at = self._store.head_modified_at(
                self._descriptor.bucket, self._descriptor.key
            )
        except ConfluxProbeError as error:
            logger.warning("source_probe_failed", source=self._descriptor.uri, error=str(error))
            raise
        return modified_at > self._snapshot.observed_modified_at

    def retrieve(self) -> SourceSnapshot:
        """Fetch, decode and cache the object.

        Returns:
            The newly cached snapshot.

        Raises:
            ConfluxFetchError: If the download fails.
            ConfluxDecodeError: If the body cannot be decoded or normalized.
        """
        try:
            stored_object = self._store.get_object(self._descriptor.bucket, self._descriptor.key)
        except ConfluxFetchError as error:
            logger.warning("source_fetch_failed", source=self._descriptor.uri, error=str(error))
            raise
        try:
            value = decode_document(
                stored_object.body, self._descriptor.format, self._descriptor.uri
            )
        except ConfluxDecodeError as error:
            logger.warning(
                "source_decode_failed",
                source=self._descriptor.uri,
                parser=self._descriptor.format.value,
                error=str(error),
            )
            raise
        observed_modified_at = stored_object.modified_at
        if self._snapshot is not None:
            # Timestamps never move backwards for one tracker.
            observed_modified_at = max(observed_modified_at, self._snapshot.observed_modified_at)
        self._snapshot = SourceSnapshot(
            descriptor=self._descriptor,
            value=value,
            observed_modified_at=observed_modified_at,
        )
        logger.info(
            "source_retrieved",
            source=self._descriptor.uri,
            modified_at=observed_modified_at.isoformat(),
        )
        return self._snapshot
