"""
Temporal correlation of unreferenced frames with a summary.

A frame that no event cites can still support a summary if it was captured
during (or shortly around) one of its sessions in the same application.
Each candidate gets a correlation score in [0, 1]:

    score = (w_time * time + w_app * app + w_title * title) / (w_time + w_app + w_title)

- time: inside a session window, 0.5 + 0.5 * (1 - d_event / max_distance)
  where d_event is the distance to the nearest event; outside the window,
  0.5 * exp(-d_window / decay), and 0 beyond ``max_temporal_distance``.
- app: 1.0 when the frame's application matches the session's.
- title: similarity of window titles.

The best score across the summary's sessions is used.
"""

import logging
import math

from collections.abc import Iterable, Sequence

from screentrail.config import EvidenceSettings
from screentrail.models.evidence import (
    ActivitySession,
    ActivitySummary,
    CorrelatedFrame,
    FrameMetadata,
)
from screentrail.utils.text import text_similarity

logger = logging.getLogger(__name__)

REASON_TEMPORAL = "temporal_proximity"
REASON_APPLICATION = "application_context_match"
REASON_TITLE = "window_title_similarity"

_REASON_THRESHOLD = 0.5


def time_score(
    frame: FrameMetadata, session: ActivitySession, settings: EvidenceSettings
) -> float:
    """Time component of the correlation score for one session."""
    t = frame.timestamp
    if session.start_time <= t <= session.end_time:
        if not session.events:
            return 0.5
        nearest = min(abs((t - e.timestamp).total_seconds()) for e in session.events)
        proximity = max(0.0, 1.0 - nearest / settings.max_temporal_distance)
        return 0.5 + 0.5 * proximity

    edge = session.start_time if t < session.start_time else session.end_time
    distance = abs((t - edge).total_seconds())
    if distance > settings.max_temporal_distance:
        return 0.0
    return 0.5 * math.exp(-distance / settings.temporal_decay_seconds)


def _session_apps(session: ActivitySession) -> set[str]:
    apps = {e.app_identifier for e in session.events if e.app_identifier}
    if session.app_identifier:
        apps.add(session.app_identifier)
    return apps


def _session_titles(session: ActivitySession) -> list[str]:
    titles = [e.window_title for e in session.events if e.window_title]
    if session.window_title:
        titles.insert(0, session.window_title)
    return titles


def score_frame(
    frame: FrameMetadata, session: ActivitySession, settings: EvidenceSettings
) -> CorrelatedFrame:
    """Correlation of one frame with one session, with the reasons that applied."""
    t_score = time_score(frame, session, settings)
    app_score = 1.0 if frame.app_identifier in _session_apps(session) else 0.0
    title_score = max(
        (text_similarity(frame.window_title, title) for title in _session_titles(session)),
        default=0.0,
    )

    total_weight = settings.time_weight + settings.application_weight + settings.title_weight
    if total_weight <= 0 or t_score == 0.0:
        return CorrelatedFrame(frame_id=frame.id, correlation_score=0.0)

    score = (
        settings.time_weight * t_score
        + settings.application_weight * app_score
        + settings.title_weight * title_score
    ) / total_weight

    reasons: list[str] = []
    if t_score >= _REASON_THRESHOLD:
        reasons.append(REASON_TEMPORAL)
    if app_score > 0:
        reasons.append(REASON_APPLICATION)
    if title_score >= _REASON_THRESHOLD:
        reasons.append(REASON_TITLE)

    return CorrelatedFrame(
        frame_id=frame.id, correlation_score=min(1.0, score), reasons=reasons
    )


def correlate_frames(
    summary: ActivitySummary,
    frames: Iterable[FrameMetadata],
    exclude: set[str],
    settings: EvidenceSettings | None = None,
) -> list[CorrelatedFrame]:
    """
    Frames temporally and contextually close to a summary's sessions.

    Args:
        summary: Summary whose sessions define the time windows
        frames: Candidate frames
        exclude: Frame ids already referenced by events
        settings: Scoring parameters

    Returns:
        Frames scoring at least ``min_correlation_score``, best first,
        at most ``max_correlated_frames``
    """
    settings = settings or EvidenceSettings()
    sessions: Sequence[ActivitySession] = summary.sessions
    if not sessions:
        return []

    scored: list[tuple[CorrelatedFrame, FrameMetadata]] = []
    for frame in frames:
        if frame.id in exclude:
            continue
        best = max(
            (score_frame(frame, session, settings) for session in sessions),
            key=lambda c: c.correlation_score,
        )
        if best.correlation_score >= settings.min_correlation_score:
            scored.append((best, frame))

    scored.sort(key=lambda item: (-item[0].correlation_score, item[1].timestamp, item[1].id))
    correlated = [c for c, _ in scored[: settings.max_correlated_frames]]

    logger.debug(f"Summary {summary.id}: {len(correlated)} correlated frame(s)")
    return correlated
