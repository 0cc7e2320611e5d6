"""Retention-timestamp refresh.

The backing store garbage-collects entries whose retention timestamp is
too old. Loading an entry bumps that timestamp once the configured interval
has elapsed, so artifacts that are still in use survive the sweep.

Refreshing is advisory. ``RetentionRefresher.refresh_if_due`` never raises
storage errors; it logs them and reports that nothing was refreshed.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .errors import RefreshError
from .logging_config import get_logger
from .storage.base import BlobMetadata, BlobStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RetentionPolicy:
    """How often the retention timestamp is bumped on read.

    Attributes:
        refresh_after_seconds: Minimum age of the timestamp before a load
            refreshes it; zero or negative disables refreshing
    """

    refresh_after_seconds: int = 0

    @property
    def enabled(self) -> bool:
        return self.refresh_after_seconds > 0

    def is_due(self, last_refreshed: Optional[datetime], now: datetime) -> bool:
        """Decide whether an entry's timestamp should be bumped.

        An entry without any timestamp is always due.
        """
        if not self.enabled:
            return False
        if last_refreshed is None:
            return True
        if last_refreshed.tzinfo is None:
            last_refreshed = last_refreshed.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now - last_refreshed >= timedelta(seconds=self.refresh_after_seconds)


class RetentionRefresher:
    """Bumps retention timestamps on behalf of the cache."""

    def __init__(self, store: BlobStore, policy: RetentionPolicy, clock: Optional[Clock] = None):
        self.store = store
        self.policy = policy
        self._clock = clock or utcnow

    def refresh(
        self,
        name: str,
        timestamp: datetime,
        metadata: Optional[BlobMetadata] = None,
    ) -> None:
        """Write a new retention timestamp.

        Any failure of the store, including errors a backend did not
        translate into BlobStoreError, is reported as RefreshError.

        Raises:
            RefreshError: If the store rejects the update
        """
        try:
            self.store.set_custom_time(name, timestamp, metadata=metadata)
        except Exception as e:
            raise RefreshError(name, e) from e

    def refresh_if_due(self, metadata: BlobMetadata) -> bool:
        """Refresh the entry described by *metadata* if its timestamp is stale.

        Returns:
            True if a new timestamp was written
        """
        if not self.policy.enabled:
            return False

        now = self._clock()
        last = metadata.last_refreshed
        if not self.policy.is_due(last, now):
            logger.debug(f"Retention time of '{metadata.name}' is recent ({last}), not refreshing")
            return False

        try:
            self.refresh(metadata.name, now, metadata)
        except RefreshError as e:
            logger.warning(
                f"Failed to refresh retention time of '{metadata.name}' in '{self.store.bucket}': {e.cause}",
                exc_info=True,
            )
            return False

        logger.debug(f"Refreshed retention time of '{metadata.name}' (was {last})")
        return True
