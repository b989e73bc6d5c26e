"""
Per-context snapshot cache.

Holds the most recent recognition snapshot for each context key with LRU
eviction. Callers serialize work on one key with ``lock_for(key)``; work on
different keys proceeds in parallel. The cache belongs to the event detector
and is never handed to plugins.
"""

import asyncio
import logging

from collections import OrderedDict
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from screentrail.constants import EventDetectionConstants as EDC
from screentrail.models.recognition import RecognitionResult

logger = logging.getLogger(__name__)

ContextKey = tuple[str, str]


class Snapshot(BaseModel):
    """Recognition results of the last processed frame for one context."""

    model_config = ConfigDict(frozen=True)

    results: tuple[RecognitionResult, ...]
    timestamp: datetime
    frame_id: str | None = None


class SnapshotCache:
    """Bounded LRU map of context key -> Snapshot, with per-key locks."""

    def __init__(self, max_size: int = EDC.SNAPSHOT_CACHE_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._snapshots: OrderedDict[ContextKey, Snapshot] = OrderedDict()
        self._locks: dict[ContextKey, asyncio.Lock] = {}

    def lock_for(self, key: ContextKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def get(self, key: ContextKey) -> Snapshot | None:
        snapshot = self._snapshots.get(key)
        if snapshot is not None:
            self._snapshots.move_to_end(key)
        return snapshot

    def put(self, key: ContextKey, snapshot: Snapshot) -> None:
        self._snapshots[key] = snapshot
        self._snapshots.move_to_end(key)

        while len(self._snapshots) > self.max_size:
            evicted, _ = self._snapshots.popitem(last=False)
            lock = self._locks.get(evicted)
            if lock is not None and not lock.locked():
                del self._locks[evicted]
            logger.debug(f"Evicted snapshot for context {evicted}")

    def clear(self) -> None:
        self._snapshots.clear()
        self._locks = {k: v for k, v in self._locks.items() if v.locked()}

    def __contains__(self, key: object) -> bool:
        return key in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)
