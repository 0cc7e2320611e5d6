"""Remote build cache backed by an S3-compatible object store."""

from .config import CacheConfig
from .errors import (
    BuildCacheError,
    CacheClosedError,
    InitializationError,
    LoadError,
    RefreshError,
    StoreError,
)
from .keys import CacheKey, compute_cache_key
from .retention import RetentionPolicy
from .service import CacheServiceContract, RemoteArtifactCache, ServiceState, open_cache

__version__ = "0.1.0"

__all__ = [
    "BuildCacheError",
    "CacheClosedError",
    "CacheConfig",
    "CacheKey",
    "CacheServiceContract",
    "InitializationError",
    "LoadError",
    "RefreshError",
    "RemoteArtifactCache",
    "RetentionPolicy",
    "ServiceState",
    "StoreError",
    "compute_cache_key",
    "open_cache",
]
