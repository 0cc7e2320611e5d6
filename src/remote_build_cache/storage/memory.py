"""In-memory object store.

Useful for offline builds and tests. Behaves like a bucket: objects are
replaced wholesale on put, and ``expire`` removes an object the way the
store's retention sweep would.
"""

import io
import threading
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Dict, Optional

from .base import Blob, BlobMetadata, BlobNotFoundError, BlobStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryBlobStore(BlobStore):
    """Thread-safe dict-backed BlobStore.

    Attributes:
        bucket: Bucket name reported in errors
        bucket_exists: What ``probe`` reports
    """

    def __init__(
        self,
        bucket: str = "memory",
        bucket_exists: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.bucket = bucket
        self.bucket_exists = bucket_exists
        self._clock = clock or _utcnow
        self._objects: Dict[str, bytes] = {}
        self._metadata: Dict[str, BlobMetadata] = {}
        self._lock = threading.Lock()
        self.closed = False

    def probe(self) -> bool:
        return self.bucket_exists

    def put(
        self,
        name: str,
        stream: BinaryIO,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        data = stream.read()
        with self._lock:
            self._objects[name] = data
            self._metadata[name] = BlobMetadata(
                name=name,
                size=len(data),
                created=self._clock(),
                user_metadata=dict(metadata or {}),
            )

    def get(self, name: str) -> Blob:
        with self._lock:
            if name not in self._objects:
                raise BlobNotFoundError(name)
            data = self._objects[name]
            meta = self._metadata[name]
            snapshot = BlobMetadata(
                name=meta.name,
                size=meta.size,
                created=meta.created,
                custom_time=meta.custom_time,
                etag=meta.etag,
                user_metadata=dict(meta.user_metadata or {}),
            )
        return Blob(io.BytesIO(data), snapshot)

    def set_custom_time(
        self,
        name: str,
        timestamp: datetime,
        metadata: Optional[BlobMetadata] = None,
    ) -> None:
        with self._lock:
            if name not in self._metadata:
                raise BlobNotFoundError(name)
            self._metadata[name].custom_time = timestamp

    def metadata(self, name: str) -> BlobMetadata:
        """Return the live metadata record of *name*."""
        with self._lock:
            if name not in self._metadata:
                raise BlobNotFoundError(name)
            return self._metadata[name]

    def exists(self, name: str) -> bool:
        with self._lock:
            return name in self._objects

    def delete(self, name: str) -> None:
        with self._lock:
            self._objects.pop(name, None)
            self._metadata.pop(name, None)

    # Store-side GC removes objects without going through the cache.
    expire = delete

    def close(self) -> None:
        self.closed = True
