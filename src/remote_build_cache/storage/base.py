"""Object store contract used by the cache.

The cache only needs a handful of capabilities from the backing store:
check the bucket exists, put/get an object by name, update its retention
timestamp, and tell a missing object apart from a real failure.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Dict, Optional

NOT_FOUND_MARKERS = ("404", "NoSuchKey", "NoSuchBucket", "Not Found", "NotFound")
_URL_PATTERN = re.compile(r"\w+://\S+")
_NOT_FOUND_PATTERN = re.compile(r"\b404\b|\bNoSuchKey\b|\bNot Found\b|\bNotFound\b")


class BlobStoreError(Exception):
    """Failure reported by the object store transport.

    Attributes:
        status_code: HTTP status reported by the transport, if known
        error_code: Provider error code (e.g. "AccessDenied"), if known
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class BlobNotFoundError(BlobStoreError):
    """The requested object does not exist."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Object '{name}' not found", status_code=404)


class CredentialsError(BlobStoreError):
    """Credentials could not be loaded."""


class BlobTransportError(BlobStoreError):
    """The store could not be reached or the connection failed mid-request.

    No response from the store backs these errors, so they never denote a
    missing object, whatever their message says.
    """


def is_not_found(error: BaseException) -> bool:
    """Tell whether a storage error means "no such object".

    Some transports report a missing object through their generic error
    path, so besides ``BlobNotFoundError`` and a 404 status the error text
    is checked for a not-found marker. URLs are stripped from the text
    first, since object names and ports may contain "404".

    Args:
        error: Exception raised by a BlobStore

    Returns:
        True if the error denotes a missing object
    """
    if isinstance(error, BlobNotFoundError):
        return True
    if isinstance(error, BlobTransportError):
        return False
    if isinstance(error, BlobStoreError):
        if error.status_code is not None:
            return error.status_code == 404
        if error.error_code in NOT_FOUND_MARKERS:
            return True
    text = _URL_PATTERN.sub("", str(error))
    return _NOT_FOUND_PATTERN.search(text) is not None


@dataclass
class BlobMetadata:
    """Metadata of a stored object.

    Attributes:
        name: Object name (the cache key)
        size: Content length in bytes
        created: Creation / last-modified time reported by the store
        custom_time: Retention timestamp, if one has been set
        etag: Entity tag, if the store reports one
        content_type: MIME type the object was stored with, if known
        user_metadata: Free-form metadata stored with the object
    """

    name: str
    size: int = 0
    created: Optional[datetime] = None
    custom_time: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None
    user_metadata: Optional[Dict[str, str]] = None

    @property
    def last_refreshed(self) -> Optional[datetime]:
        """Retention timestamp, falling back to the creation time."""
        return self.custom_time or self.created


class Blob:
    """An object fetched from the store, with an open content stream.

    Use as a context manager, or call ``close()`` once the stream has been
    consumed.
    """

    def __init__(self, stream: BinaryIO, metadata: BlobMetadata):
        self.stream = stream
        self.metadata = metadata

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "Blob":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BlobStore(ABC):
    """Object store bound to a single bucket."""

    bucket: str

    @abstractmethod
    def probe(self) -> bool:
        """Check the bucket.

        Returns:
            True if the bucket exists, False if it does not

        Raises:
            BlobStoreError: If the store cannot be reached or access is denied
        """

    @abstractmethod
    def put(
        self,
        name: str,
        stream: BinaryIO,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """Upload the full content of *stream* as object *name*, overwriting it."""

    @abstractmethod
    def get(self, name: str) -> Blob:
        """Open object *name* for reading.

        Raises:
            BlobNotFoundError: If the object does not exist
            BlobStoreError: For any other failure
        """

    @abstractmethod
    def set_custom_time(
        self,
        name: str,
        timestamp: datetime,
        metadata: Optional[BlobMetadata] = None,
    ) -> None:
        """Set the retention timestamp of object *name*.

        Args:
            name: Object name
            timestamp: New retention timestamp
            metadata: Metadata already fetched for the object, which lets
                stores that rewrite metadata skip a lookup

        Raises:
            BlobStoreError: If the update fails; stores translate all of
                their transport errors into this type
        """

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Check whether object *name* exists."""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Delete object *name*. Deleting a missing object is not an error."""

    def close(self) -> None:
        """Release transport resources."""
