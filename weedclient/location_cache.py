"""
Volume location cache.

Memoizes master lookups per volume id so repeated operations on fids in the
same volume do not query the master every time. Entries are timestamped when
stored and read as absent once older than the staleness window; there is no
other eviction.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from common.constants import VOLUME_LOCATION_STALE_SECONDS
from common.logging_config import get_logger
from weedclient.schemas import VolumeLocation

logger = get_logger(__name__)


@dataclass(frozen=True)
class VolumeLocationEntry:
    """
    Cached lookup result for one volume.

    Attributes:
        locations: Volume servers holding the volume
        fetched_at: Clock reading when the master answered
    """
    locations: Tuple[VolumeLocation, ...]
    fetched_at: float


class VolumeLocationCache:
    """
    Thread-safe map of volume id -> locations with time-based staleness.

    Shared by every upload that goes through one Seaweed client, so lookups
    from concurrent batch workers read and refresh it under a lock.
    """

    def __init__(
        self,
        stale_after_seconds: float = VOLUME_LOCATION_STALE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            stale_after_seconds: Age after which an entry is treated as absent
            clock: Monotonic clock; tests inject a fake one
        """
        self._stale_after = stale_after_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, VolumeLocationEntry] = {}

    def get(self, volume_id: str) -> Optional[List[VolumeLocation]]:
        """
        Return fresh locations for a volume, or None when absent or stale.
        """
        with self._lock:
            entry = self._entries.get(volume_id)
            if entry is None:
                return None

            age = self._clock() - entry.fetched_at
            if age >= self._stale_after:
                logger.debug(f"Cache entry for volume {volume_id} is stale [age={age:.1f}s]")
                return None

            logger.debug(f"Cache hit for volume {volume_id} -> {len(entry.locations)} location(s)")
            return list(entry.locations)

    def put(self, volume_id: str, locations: List[VolumeLocation]) -> None:
        with self._lock:
            self._entries[volume_id] = VolumeLocationEntry(
                locations=tuple(locations),
                fetched_at=self._clock(),
            )
        logger.debug(f"Cache updated for volume {volume_id} -> {len(locations)} location(s)")

    def invalidate(self, volume_id: str) -> None:
        with self._lock:
            self._entries.pop(volume_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
