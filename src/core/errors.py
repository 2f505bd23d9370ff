"""Conflux exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class ConfluxError(Exception):
    """Base exception for all Conflux failures."""


class ConfluxConfigError(ConfluxError):
    """Raised for invalid runtime or source configuration."""


class ConfluxDependencyError(ConfluxError):
    """Raised when an optional runtime dependency is missing."""


class ConfluxLifecycleError(ConfluxError):
    """Raised when the aggregator is started or stopped out of order."""


class ConfluxProbeError(ConfluxError):
    """Raised when an object metadata probe fails."""


class ConfluxFetchError(ConfluxError):
    """Raised when an object body cannot be downloaded."""


class ConfluxDecodeError(ConfluxError):
    """Raised for malformed JSON or YAML documents."""


class ConfluxNormalizeError(ConfluxDecodeError):
    """Raised when a decoded YAML node has no canonical representation."""


class ConfluxMergeError(ConfluxError):
    """Raised when merge input falls outside the canonical value model."""
