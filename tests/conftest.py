"""Shared pytest fixtures for Conflux tests."""

from __future__ import annotations

import pytest

from store.object_store import S3ObjectStore
from tests.fake_s3 import FakeS3Client


@pytest.fixture
def fake_s3() -> FakeS3Client:
    """Empty in-memory S3 client."""
    return FakeS3Client()


@pytest.fixture
def object_store(fake_s3: FakeS3Client) -> S3ObjectStore:
    """Real S3 adapter wrapped around the in-memory client."""
    return S3ObjectStore(fake_s3)
