"""Remote artifact cache service.

``RemoteArtifactCache`` stores build outputs in a bucket under their cache
key and reads them back. Loading an entry also bumps its retention
timestamp once ``refresh_after_seconds`` have passed, so the bucket's own
garbage collection keeps artifacts that are still in use.

Use ``open_cache`` to obtain an instance; it validates credentials and the
bucket before returning, so a misconfigured cache fails at startup rather
than in the middle of a build.
"""

import io
import tempfile
from enum import Enum
from typing import BinaryIO, Callable, Optional, Protocol

from .config import CacheConfig
from .errors import CacheClosedError, InitializationError, LoadError, StoreError
from .keys import KeyLike, as_cache_key
from .logging_config import get_logger
from .retention import Clock, RetentionPolicy, RetentionRefresher
from .storage.base import BlobStore, BlobStoreError, CredentialsError, is_not_found
from .storage.s3 import S3BlobStore

logger = get_logger(__name__)

# Artifacts up to this size are spooled in memory before upload.
SPOOL_MAX_BYTES = 8 * 1024 * 1024

Writer = Callable[[BinaryIO], None]
Reader = Callable[[BinaryIO], None]


class ServiceState(Enum):
    """Lifecycle of a cache instance."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class CacheServiceContract(Protocol):
    """What a build system needs from a remote cache."""

    def store(self, key: KeyLike, writer: Writer) -> None:
        ...

    def load(self, key: KeyLike, reader: Reader) -> bool:
        ...

    def close(self) -> None:
        ...


class RemoteArtifactCache:
    """Build cache backed by a bucket in an object store.

    Attributes:
        bucket: Name of the backing bucket
        policy: Retention refresh policy
    """

    def __init__(
        self,
        blob_store: BlobStore,
        policy: Optional[RetentionPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        """Wrap an already validated blob store.

        Prefer ``open_cache``, which checks the bucket first.

        Args:
            blob_store: Store bound to the cache bucket
            policy: Retention refresh policy (refresh disabled by default)
            clock: Time source for retention decisions
        """
        self._state = ServiceState.UNINITIALIZED
        self._blobs = blob_store
        self.bucket = blob_store.bucket
        self.policy = policy or RetentionPolicy()
        self._refresher = RetentionRefresher(blob_store, self.policy, clock)
        self._state = ServiceState.READY

    @property
    def state(self) -> ServiceState:
        return self._state

    def _ensure_ready(self) -> None:
        if self._state is not ServiceState.READY:
            raise CacheClosedError(f"Cache for bucket '{self.bucket}' is closed", bucket=self.bucket)

    def store(self, key: KeyLike, writer: Writer) -> None:
        """Store the bytes produced by *writer* under *key*.

        The writer receives a writable binary stream. The object is only
        committed once the writer returned and the upload completed; an
        existing entry for the key is replaced.

        Args:
            key: Cache key
            writer: Callable that writes the artifact to the given stream

        Raises:
            StoreError: If the object store rejects the upload
            CacheClosedError: If the cache has been closed
        """
        self._ensure_ready()
        name = as_cache_key(key).hash_code

        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as buffer:
            writer(buffer)
            size = buffer.tell()
            buffer.seek(0)
            try:
                self._blobs.put(name, buffer)
            except BlobStoreError as e:
                raise StoreError(
                    f"Unable to store '{name}' in bucket '{self.bucket}': {e}",
                    key=name,
                    bucket=self.bucket,
                ) from e

        logger.debug(f"Stored '{name}' ({size} bytes) in '{self.bucket}'")

    def load(self, key: KeyLike, reader: Reader) -> bool:
        """Stream the entry for *key* to *reader*.

        Args:
            key: Cache key
            reader: Callable that consumes the artifact from the given stream

        Returns:
            True if the entry existed and was delivered, False on a miss

        Raises:
            LoadError: If the entry could not be read for any reason other
                than not existing
            CacheClosedError: If the cache has been closed
        """
        self._ensure_ready()
        name = as_cache_key(key).hash_code

        try:
            blob = self._blobs.get(name)
        except BlobStoreError as e:
            if is_not_found(e):
                logger.debug(f"Cache miss for '{name}' in '{self.bucket}'")
                return False
            raise LoadError(
                f"Unable to load '{name}' from bucket '{self.bucket}': {e}",
                key=name,
                bucket=self.bucket,
            ) from e

        with blob:
            try:
                reader(blob.stream)
            except BlobStoreError as e:
                raise LoadError(
                    f"Unable to load '{name}' from bucket '{self.bucket}': {e}",
                    key=name,
                    bucket=self.bucket,
                ) from e

        logger.debug(f"Cache hit for '{name}' in '{self.bucket}'")
        self._refresher.refresh_if_due(blob.metadata)
        return True

    def store_bytes(self, key: KeyLike, data: bytes) -> None:
        """Store *data* under *key*."""
        self.store(key, lambda stream: stream.write(data))

    def load_bytes(self, key: KeyLike) -> Optional[bytes]:
        """Return the bytes stored under *key*, or None on a miss."""
        sink = io.BytesIO()
        if not self.load(key, lambda stream: sink.write(stream.read())):
            return None
        return sink.getvalue()

    def contains(self, key: KeyLike) -> bool:
        """Check for an entry without downloading or refreshing it.

        Raises:
            LoadError: If the store cannot be queried
        """
        self._ensure_ready()
        name = as_cache_key(key).hash_code
        try:
            return self._blobs.exists(name)
        except BlobStoreError as e:
            raise LoadError(
                f"Unable to look up '{name}' in bucket '{self.bucket}': {e}",
                key=name,
                bucket=self.bucket,
            ) from e

    def close(self) -> None:
        """Release the object store client. Calling it again does nothing."""
        if self._state is ServiceState.CLOSED:
            return
        self._state = ServiceState.CLOSED
        self._blobs.close()
        logger.info(f"Closed build cache for bucket '{self.bucket}'")

    def __enter__(self) -> "RemoteArtifactCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_cache(
    config: CacheConfig,
    blob_store: Optional[BlobStore] = None,
    clock: Optional[Clock] = None,
) -> RemoteArtifactCache:
    """Create a ready-to-use cache, validating credentials and bucket.

    Args:
        config: Cache configuration
        blob_store: Store to use instead of building an S3 client from
            *config* (its bucket must match ``config.bucket``)
        clock: Time source for retention decisions

    Returns:
        RemoteArtifactCache in the READY state

    Raises:
        InitializationError: If credentials cannot be loaded, the bucket
            cannot be reached, or it does not exist
    """
    bucket = config.bucket
    if not bucket:
        raise InitializationError("No bucket configured for the build cache")

    if blob_store is None:
        try:
            blob_store = S3BlobStore.create(
                bucket,
                credentials=config.credentials,
                profile=config.profile,
                endpoint_url=config.endpoint_url,
                region=config.region,
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
            )
        except CredentialsError as e:
            raise InitializationError(
                f"Unable to load credentials from {config.credentials or 'the default provider chain'}.",
                bucket=bucket,
            ) from e
        except BlobStoreError as e:
            raise InitializationError(f"Unable to access bucket '{bucket}'.", bucket=bucket) from e

    try:
        available = blob_store.probe()
    except BlobStoreError as e:
        blob_store.close()
        raise InitializationError(f"Unable to access bucket '{bucket}'.", bucket=bucket) from e

    if not available:
        blob_store.close()
        raise InitializationError(f"{bucket} is unavailable", bucket=bucket)

    policy = RetentionPolicy(config.refresh_after_seconds)
    logger.info(
        f"Using build cache bucket '{bucket}' "
        f"(refresh after {policy.refresh_after_seconds}s{'' if policy.enabled else ', disabled'})"
    )
    return RemoteArtifactCache(blob_store, policy, clock)
