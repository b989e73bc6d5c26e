"""Builders for synthetic pipeline inputs."""

from datetime import datetime, timedelta

from screentrail.models.evidence import (
    ActivityEvent,
    ActivitySession,
    ActivitySummary,
    FrameMetadata,
)
from screentrail.models.recognition import (
    ApplicationContext,
    BoundingRegion,
    Frame,
    RecognitionResult,
)

BASE_TIME = datetime(2026, 3, 2, 9, 0, 0)


def at(seconds: float) -> datetime:
    """Timestamp ``seconds`` after BASE_TIME."""
    return BASE_TIME + timedelta(seconds=seconds)


def make_result(
    text: str,
    x: float = 0,
    y: float = 0,
    width: float = 80,
    height: float = 20,
    confidence: float = 0.9,
) -> RecognitionResult:
    return RecognitionResult(
        text=text,
        bounding_region=BoundingRegion(x=x, y=y, width=width, height=height),
        confidence=confidence,
    )


def make_context(
    app_identifier: str = "com.example.app",
    window_title: str = "Main",
    timestamp: datetime | None = None,
    **metadata,
) -> ApplicationContext:
    return ApplicationContext(
        app_identifier=app_identifier,
        app_name=app_identifier.rsplit(".", 1)[-1],
        window_title=window_title,
        timestamp=timestamp or BASE_TIME,
        metadata=metadata,
    )


def make_frame(
    frame_id: str = "frame-1",
    context: ApplicationContext | None = None,
    seconds: float = 0,
    image: object = "image",
    language_hint: str | None = None,
) -> Frame:
    return Frame(
        id=frame_id,
        image=image,
        capture_timestamp=at(seconds),
        context=context or make_context(),
        language_hint=language_hint,
    )


def make_frame_metadata(
    frame_id: str,
    seconds: float,
    confidence: float = 0.9,
    app_identifier: str = "com.example.app",
    window_title: str = "Main",
) -> FrameMetadata:
    return FrameMetadata(
        id=frame_id,
        timestamp=at(seconds),
        app_identifier=app_identifier,
        window_title=window_title,
        confidence=confidence,
    )


def make_event(
    event_id: str,
    seconds: float,
    confidence: float = 0.9,
    frames: list[str] | None = None,
    app_identifier: str = "com.example.app",
    window_title: str = "Main",
) -> ActivityEvent:
    return ActivityEvent(
        id=event_id,
        type="field_change",
        timestamp=at(seconds),
        confidence=confidence,
        evidence_frames=frames or [],
        app_identifier=app_identifier,
        window_title=window_title,
    )


def make_summary(
    summary_id: str,
    events: list[ActivityEvent],
    start: float = 0,
    end: float = 120,
    app_identifier: str = "com.example.app",
    window_title: str = "Main",
) -> ActivitySummary:
    return ActivitySummary(
        id=summary_id,
        narrative="Edited a record",
        sessions=[
            ActivitySession(
                id=f"{summary_id}-session",
                start_time=at(start),
                end_time=at(end),
                app_identifier=app_identifier,
                window_title=window_title,
                events=events,
            )
        ],
    )
