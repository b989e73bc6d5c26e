"""
Rolling per-engine performance metrics.

Counters are incremented without locks: ``next()`` on an
``itertools.count`` is atomic under the GIL, and reads take the next value
from the counter's repr without advancing it. ``deque.append`` with a
``maxlen`` is likewise thread-safe.
"""

import itertools

from collections import deque

from pydantic import BaseModel, Field

from screentrail.constants import RecognitionConstants as RC


class AtomicCounter:
    """Lock-free monotonic counter."""

    def __init__(self) -> None:
        self._increments = itertools.count()

    def increment(self) -> None:
        next(self._increments)

    @property
    def value(self) -> int:
        # repr is "count(N)" where N is the next value; reading never advances it
        return int(repr(self._increments)[len("count(") : -1])


class EngineMetricsSnapshot(BaseModel):
    """Read-only view of one engine's counters."""

    engine: str
    attempts: int = Field(ge=0)
    success_count: int = Field(ge=0)
    failure_count: int = Field(ge=0)
    success_rate: float = Field(ge=0.0, le=1.0)
    average_latency: float = Field(ge=0.0, description="Seconds, rolling window")


class EngineMetrics:
    """Counters and rolling latency for one engine."""

    def __init__(self, engine: str, window: int = RC.METRICS_WINDOW) -> None:
        self.engine = engine
        self._successes = AtomicCounter()
        self._failures = AtomicCounter()
        self._latencies: deque[float] = deque(maxlen=window)

    def record_success(self, latency: float) -> None:
        self._successes.increment()
        self._latencies.append(latency)

    def record_failure(self, latency: float) -> None:
        self._failures.increment()
        self._latencies.append(latency)

    def snapshot(self) -> EngineMetricsSnapshot:
        successes = self._successes.value
        failures = self._failures.value
        attempts = successes + failures
        latencies = list(self._latencies)
        return EngineMetricsSnapshot(
            engine=self.engine,
            attempts=attempts,
            success_count=successes,
            failure_count=failures,
            success_rate=successes / attempts if attempts else 0.0,
            average_latency=sum(latencies) / len(latencies) if latencies else 0.0,
        )


class CoordinatorMetricsSnapshot(BaseModel):
    engines: dict[str, EngineMetricsSnapshot] = Field(default_factory=dict)
    frames: int = Field(default=0, ge=0)
    fallback_count: int = Field(default=0, ge=0)
    fallback_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class CoordinatorMetrics:
    """Metrics for all engines used by one fallback coordinator."""

    def __init__(self, window: int = RC.METRICS_WINDOW) -> None:
        self._window = window
        self._engines: dict[str, EngineMetrics] = {}
        self._frames = AtomicCounter()
        self._fallbacks = AtomicCounter()

    def for_engine(self, engine: str) -> EngineMetrics:
        metrics = self._engines.get(engine)
        if metrics is None:
            # setdefault keeps the first instance if two tasks race here
            metrics = self._engines.setdefault(
                engine, EngineMetrics(engine, self._window)
            )
        return metrics

    def record_frame(self, used_fallback: bool) -> None:
        self._frames.increment()
        if used_fallback:
            self._fallbacks.increment()

    def snapshot(self) -> CoordinatorMetricsSnapshot:
        frames = self._frames.value
        fallbacks = self._fallbacks.value
        return CoordinatorMetricsSnapshot(
            engines={name: m.snapshot() for name, m in list(self._engines.items())},
            frames=frames,
            fallback_count=fallbacks,
            fallback_rate=fallbacks / frames if frames else 0.0,
        )

    def reset(self) -> None:
        self._engines = {}
        self._frames = AtomicCounter()
        self._fallbacks = AtomicCounter()
