"""Object store backends for the remote build cache."""

from .base import (
    Blob,
    BlobMetadata,
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    BlobTransportError,
    CredentialsError,
    is_not_found,
)
from .memory import InMemoryBlobStore
from .s3 import S3BlobStore, load_session

__all__ = [
    "Blob",
    "BlobMetadata",
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreError",
    "BlobTransportError",
    "CredentialsError",
    "InMemoryBlobStore",
    "S3BlobStore",
    "is_not_found",
    "load_session",
]
