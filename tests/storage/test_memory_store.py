"""Tests for InMemoryBlobStore."""

import io
from datetime import timedelta

import pytest

from remote_build_cache.storage.base import BlobNotFoundError
from remote_build_cache.storage.memory import InMemoryBlobStore

from conftest import T0


class TestInMemoryBlobStore:
    """Tests for the in-memory bucket."""

    def test_bucket_exists_flag(self):
        assert InMemoryBlobStore().probe() is True
        assert InMemoryBlobStore(bucket_exists=False).probe() is False

    def test_put_and_get(self, memory_store):
        memory_store.put("abc", io.BytesIO(b"data"), {"origin": "ci"})

        with memory_store.get("abc") as blob:
            assert blob.read() == b"data"
            assert blob.metadata.size == 4
            assert blob.metadata.created == T0
            assert blob.metadata.custom_time is None
            assert blob.metadata.user_metadata == {"origin": "ci"}

    def test_get_missing(self, memory_store):
        with pytest.raises(BlobNotFoundError):
            memory_store.get("missing")

    def test_get_returns_snapshot_of_metadata(self, memory_store):
        memory_store.put("abc", io.BytesIO(b"data"))
        blob = memory_store.get("abc")

        memory_store.set_custom_time("abc", T0 + timedelta(hours=1))

        assert blob.metadata.custom_time is None
        assert memory_store.metadata("abc").custom_time == T0 + timedelta(hours=1)

    def test_put_resets_metadata(self, memory_store, clock):
        memory_store.put("abc", io.BytesIO(b"one"))
        memory_store.set_custom_time("abc", T0)
        clock.now = T0 + timedelta(days=1)

        memory_store.put("abc", io.BytesIO(b"two"))

        meta = memory_store.metadata("abc")
        assert meta.custom_time is None
        assert meta.created == clock.now

    def test_set_custom_time_missing(self, memory_store):
        with pytest.raises(BlobNotFoundError):
            memory_store.set_custom_time("missing", T0)

    def test_exists_delete_expire(self, memory_store):
        memory_store.put("a", io.BytesIO(b"1"))
        memory_store.put("b", io.BytesIO(b"2"))

        memory_store.delete("a")
        memory_store.expire("b")
        memory_store.delete("never-stored")

        assert not memory_store.exists("a")
        assert not memory_store.exists("b")

    def test_close(self, memory_store):
        memory_store.close()
        assert memory_store.closed is True
