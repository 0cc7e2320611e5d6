"""Exceptions raised by the remote build cache.

Storage-level failures (``BlobStoreError`` and friends) live in
``remote_build_cache.storage.base``; the errors here are what callers of
the cache see.
"""

from typing import Optional


class BuildCacheError(Exception):
    """Base class for errors surfaced by the cache service.

    Attributes:
        message: Human readable description
        key: Cache key involved, if any
        bucket: Bucket involved, if any
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        bucket: Optional[str] = None,
    ):
        self.message = message
        self.key = key
        self.bucket = bucket
        super().__init__(message)


class InitializationError(BuildCacheError):
    """Raised when the cache cannot be brought into a usable state.

    Covers unreadable credentials, an unreachable object store and a
    missing bucket.
    """


class StoreError(BuildCacheError):
    """Raised when an artifact could not be written to the bucket."""


class LoadError(BuildCacheError):
    """Raised when an artifact could not be read for a reason other than a miss."""


class CacheClosedError(BuildCacheError):
    """Raised when an operation is attempted on a closed cache."""


class RefreshError(Exception):
    """Raised when the retention timestamp of an entry could not be updated.

    Deliberately not a ``BuildCacheError``: refresh failures are advisory and
    are never propagated out of a load.
    """

    def __init__(self, name: str, cause: Optional[BaseException] = None):
        self.name = name
        self.cause = cause
        super().__init__(f"Unable to refresh retention time of '{name}': {cause}")
