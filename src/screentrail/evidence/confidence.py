"""
Confidence propagation from frames through events to a summary.

Frame confidence is the frame's own recognition confidence, or
``missing_frame_confidence`` when an event cites a frame the store does not
know. Event confidence is the confidence the event carries.

The summary aggregate combines the evidenced events only. For each event e
with at least one frame, its support is

    s_e = min(confidence_e, min(frame confidences of e))

and with ``coverage`` = evidenced events / all events:

    aggregated = min(coverage * harmonic_mean(s_e), min(s_e))
    overall    = min(aggregated, mean(confidence_e over evidenced events))

A summary whose events have no frames at all has overall confidence 0.

Every term is non-decreasing in each s_e, and another frame on an evidenced
event can only lower its s_e, so such a frame never raises the overall
confidence however it compares with the event's other frames. Evidencing a
previously bare event raises coverage, but a first frame below the current
overall confidence puts min(s_e) below it as well.

Confidence factors are descriptive only; they do not change the score.
"""

import logging

from collections.abc import Mapping, Sequence
from statistics import fmean

from screentrail.config import EvidenceSettings
from screentrail.constants import EvidenceConstants as EC
from screentrail.models.evidence import (
    ActivityEvent,
    ActivitySummary,
    ConfidenceFactor,
    ConfidencePropagation,
    EventConfidence,
    EvidenceReference,
    FrameConfidence,
    FrameMetadata,
    SummaryConfidence,
)

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# ============================================================================
# Frame Level
# ============================================================================


def _temporal_stability(frame: FrameMetadata, frames: Mapping[str, FrameMetadata]) -> float:
    """Share of frames captured within the stability window in the same application."""
    nearby = [
        other
        for other in frames.values()
        if other.id != frame.id
        and abs((other.timestamp - frame.timestamp).total_seconds())
        <= EC.TEMPORAL_STABILITY_WINDOW
    ]
    if not nearby:
        return 0.5
    same_app = sum(1 for other in nearby if other.app_identifier == frame.app_identifier)
    return same_app / len(nearby)


def _context_relevance(frame: FrameMetadata, citing_apps: set[str]) -> float:
    relevance = 0.5
    if frame.window_title.strip():
        relevance += 0.2
    if frame.app_identifier and frame.app_identifier in citing_apps:
        relevance += 0.3
    return _clamp(relevance)


def frame_confidence(
    frame_id: str,
    frames: Mapping[str, FrameMetadata],
    citing_events: Sequence[ActivityEvent],
    settings: EvidenceSettings,
) -> FrameConfidence:
    """Confidence details for one referenced frame."""
    frame = frames.get(frame_id)
    if frame is None:
        missing = settings.missing_frame_confidence
        return FrameConfidence(
            frame_id=frame_id,
            ocr_confidence=missing,
            image_quality=EC.DEFAULT_IMAGE_QUALITY,
            temporal_stability=0.5,
            context_relevance=0.5,
            overall=missing,
        )

    citing_apps = {e.app_identifier for e in citing_events if e.app_identifier}
    return FrameConfidence(
        frame_id=frame.id,
        ocr_confidence=frame.confidence,
        image_quality=(
            frame.image_quality
            if frame.image_quality is not None
            else EC.DEFAULT_IMAGE_QUALITY
        ),
        temporal_stability=_temporal_stability(frame, frames),
        context_relevance=_context_relevance(frame, citing_apps),
        overall=frame.confidence,
    )


# ============================================================================
# Event Level
# ============================================================================


def _spatial_consistency(frame_ids: Sequence[str], frames: Mapping[str, FrameMetadata]) -> float:
    if not frame_ids:
        return 0.0
    known = [frames[fid] for fid in frame_ids if fid in frames]
    if not known:
        return 0.5
    app_consistency = 1.0 if len({f.app_identifier for f in known}) == 1 else 0.5
    title_consistency = 1.0 if len({f.window_title for f in known}) <= 2 else 0.7
    return (app_consistency + title_consistency) / 2


def event_confidence(
    event: ActivityEvent,
    frame_ids: Sequence[str],
    frame_confidences: Mapping[str, FrameConfidence],
    frames: Mapping[str, FrameMetadata],
) -> EventConfidence:
    """Confidence details for one summary event."""
    count = len(frame_ids)
    support = min((frame_confidences[fid].overall for fid in frame_ids), default=0.0)
    temporal = 0.4 * min(count / EC.FRAMES_FOR_FULL_CONSISTENCY, 1.0) + 0.6 * event.confidence

    return EventConfidence(
        event_id=event.id,
        raw_confidence=event.confidence,
        evidence_frame_count=count,
        frame_support=support,
        temporal_consistency=_clamp(temporal),
        spatial_consistency=_spatial_consistency(frame_ids, frames),
        overall=event.confidence,
    )


# ============================================================================
# Summary Level
# ============================================================================


def _harmonic_mean(values: Sequence[float]) -> float:
    """Harmonic mean; 0 if empty or any value is 0."""
    if not values or any(value <= 0 for value in values):
        return 0.0
    return len(values) / sum(1.0 / value for value in values)


def _factors(
    summary: ActivitySummary,
    coverage: float,
    frame_confidences: Mapping[str, FrameConfidence],
) -> list[ConfidenceFactor]:
    factors: list[ConfidenceFactor] = []
    event_count = len(summary.events)

    if event_count >= EC.SUFFICIENT_EVENT_COUNT:
        factors.append(
            ConfidenceFactor(
                name="sufficient_events",
                impact=0.2,
                description=f"{event_count} events support the summary",
            )
        )
    else:
        factors.append(
            ConfidenceFactor(
                name="insufficient_events",
                impact=-0.3,
                description=f"Only {event_count} event(s) support the summary",
            )
        )

    if event_count and coverage < 1.0:
        factors.append(
            ConfidenceFactor(
                name="unevidenced_events",
                impact=-(1.0 - coverage),
                description=f"{coverage:.0%} of events have evidence frames",
            )
        )

    if frame_confidences:
        average = fmean(fc.overall for fc in frame_confidences.values())
        if average < EC.LOW_FRAME_CONFIDENCE:
            factors.append(
                ConfidenceFactor(
                    name="low_frame_confidence",
                    impact=-0.2,
                    description=f"Average frame confidence {average:.2f}",
                )
            )

    duration = sum(
        max(0.0, (s.end_time - s.start_time).total_seconds()) for s in summary.sessions
    )
    if duration > EC.SUBSTANTIAL_SESSION_SECONDS:
        factors.append(
            ConfidenceFactor(
                name="substantial_session",
                impact=0.1,
                description=f"Sessions span {duration:.0f}s",
            )
        )
    elif duration < EC.BRIEF_SESSION_SECONDS:
        factors.append(
            ConfidenceFactor(
                name="brief_session",
                impact=-0.1,
                description=f"Sessions span only {duration:.0f}s",
            )
        )

    return factors


def propagate_confidence(
    summary: ActivitySummary,
    reference: EvidenceReference,
    frames: Mapping[str, FrameMetadata],
    settings: EvidenceSettings | None = None,
) -> ConfidencePropagation:
    """
    Compute frame, event and summary confidence for a linked summary.

    Args:
        summary: The summary being scored
        reference: Its evidence reference (supplies event→frame edges)
        frames: Known frame metadata by id
        settings: Evidence settings (missing-frame confidence)

    Returns:
        Confidence details with ``overall_confidence`` in [0, 1]
    """
    settings = settings or EvidenceSettings()
    events = summary.events
    event_frames = reference.event_evidence_map

    citing: dict[str, list[ActivityEvent]] = {}
    for event in events:
        for frame_id in event_frames.get(event.id, []):
            citing.setdefault(frame_id, []).append(event)

    frame_confidences = {
        frame_id: frame_confidence(frame_id, frames, citing_events, settings)
        for frame_id, citing_events in citing.items()
    }
    event_confidences = {
        event.id: event_confidence(
            event, event_frames.get(event.id, []), frame_confidences, frames
        )
        for event in events
    }

    evidenced = [ec for ec in event_confidences.values() if ec.evidence_frame_count > 0]
    coverage = len(evidenced) / len(events) if events else 0.0

    if evidenced:
        supports = [min(ec.raw_confidence, ec.frame_support) for ec in evidenced]
        aggregated = min(coverage * _harmonic_mean(supports), min(supports))
        event_average = fmean(ec.raw_confidence for ec in evidenced)
        overall = _clamp(min(aggregated, event_average))
    else:
        aggregated = 0.0
        event_average = 0.0
        overall = 0.0

    referenced = len(frame_confidences)
    completeness = (
        sum(1 for frame_id in frame_confidences if frame_id in frames) / referenced
        if referenced
        else 0.0
    )
    frame_average = (
        fmean(fc.overall for fc in frame_confidences.values()) if frame_confidences else 0.0
    )

    logger.debug(
        f"Summary {summary.id}: coverage={coverage:.2f} aggregated={aggregated:.3f} "
        f"overall={overall:.3f}"
    )

    return ConfidencePropagation(
        summary_id=summary.id,
        overall_confidence=overall,
        summary_confidence=SummaryConfidence(
            aggregated_confidence=_clamp(aggregated),
            event_confidence_average=event_average,
            frame_confidence_average=frame_average,
            evidence_coverage=coverage,
            evidence_completeness=completeness,
        ),
        frame_confidences=frame_confidences,
        event_confidences=event_confidences,
        confidence_factors=_factors(summary, coverage, frame_confidences),
    )
