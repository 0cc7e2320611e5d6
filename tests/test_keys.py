"""Tests for cache keys."""

import hashlib

import pytest

from remote_build_cache.keys import CacheKey, as_cache_key, compute_cache_key


class TestCacheKey:
    """Tests for CacheKey."""

    def test_str_is_hash_code(self):
        key = CacheKey("0123abcd")
        assert str(key) == "0123abcd"

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError, match="non-empty"):
            CacheKey("")

    def test_keys_are_immutable_and_hashable(self):
        key = CacheKey("abc")
        with pytest.raises(AttributeError):
            key.hash_code = "other"
        assert {key, CacheKey("abc")} == {key}

    def test_as_cache_key_accepts_strings(self):
        assert as_cache_key("abc") == CacheKey("abc")

    def test_as_cache_key_passes_through_keys(self):
        key = CacheKey("abc")
        assert as_cache_key(key) is key


class TestComputeCacheKey:
    """Tests for compute_cache_key."""

    def test_bytes(self):
        key = compute_cache_key(b"artifact")
        assert key.hash_code == hashlib.sha256(b"artifact").hexdigest()
        assert len(key.hash_code) == 64

    def test_file_matches_bytes(self, tmp_path):
        data = b"x" * 20000
        path = tmp_path / "out.jar"
        path.write_bytes(data)

        assert compute_cache_key(path) == compute_cache_key(data)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            compute_cache_key(tmp_path / "missing.jar")
