"""Cache keys.

A cache key is an opaque hash digest supplied by the build system. It is
used verbatim as the object name in the bucket.
"""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class CacheKey:
    """Opaque identifier of a cache entry.

    Attributes:
        hash_code: Digest string, used as the object name
    """

    hash_code: str

    def __post_init__(self):
        if not isinstance(self.hash_code, str) or not self.hash_code:
            raise ValueError("Cache key must be a non-empty string")

    def __str__(self) -> str:
        return self.hash_code


KeyLike = Union[CacheKey, str]


def as_cache_key(key: KeyLike) -> CacheKey:
    """Coerce a string or CacheKey into a CacheKey.

    Args:
        key: Key as supplied by the caller

    Returns:
        CacheKey instance

    Raises:
        ValueError: If the key is empty
    """
    if isinstance(key, CacheKey):
        return key
    return CacheKey(key)


def compute_cache_key(source: Union[bytes, Path]) -> CacheKey:
    """Compute a SHA-256 cache key for raw bytes or a file.

    Files are read in 8 KiB chunks so large build outputs are never held in
    memory.

    Args:
        source: Bytes to hash, or path to a file

    Returns:
        CacheKey holding the full hex digest (64 characters)

    Raises:
        FileNotFoundError: If a path is given and the file does not exist
    """
    sha256 = hashlib.sha256()
    if isinstance(source, (bytes, bytearray)):
        sha256.update(source)
    else:
        with open(source, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha256.update(chunk)
    return CacheKey(sha256.hexdigest())
