"""Delta-based event detection."""

from screentrail.events.classifier import BaseClassifier
from screentrail.events.delta import compute_delta
from screentrail.events.detector import EventDetector
from screentrail.events.snapshot_cache import Snapshot, SnapshotCache

__all__ = [
    "BaseClassifier",
    "EventDetector",
    "Snapshot",
    "SnapshotCache",
    "compute_delta",
]
