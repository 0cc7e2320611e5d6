"""Shared fixtures for remote build cache tests."""

from datetime import datetime, timezone

import pytest

from remote_build_cache.retention import RetentionPolicy
from remote_build_cache.service import RemoteArtifactCache
from remote_build_cache.storage.memory import InMemoryBlobStore

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    """Clock fixed at T0."""
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    """Empty in-memory bucket."""
    return InMemoryBlobStore(bucket="build-cache", clock=clock)


@pytest.fixture
def cache(memory_store, clock):
    """Ready cache over the in-memory bucket with refresh disabled."""
    return RemoteArtifactCache(memory_store, RetentionPolicy(0), clock)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host configuration out of the tests."""
    for var in (
        "RBC_BUCKET",
        "RBC_CREDENTIALS",
        "RBC_REFRESH_AFTER_SECONDS",
        "RBC_ENDPOINT_URL",
        "RBC_REGION",
        "RBC_PROFILE",
    ):
        monkeypatch.delenv(var, raising=False)
