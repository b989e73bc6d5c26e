"""Tests for temporal frame correlation."""

import math

import pytest

from screentrail.config import EvidenceSettings
from screentrail.evidence.correlation import (
    REASON_APPLICATION,
    REASON_TEMPORAL,
    REASON_TITLE,
    correlate_frames,
    score_frame,
    time_score,
)
from screentrail.models.evidence import ActivitySummary

from tests.helpers.builders import make_event, make_frame_metadata, make_summary

pytestmark = pytest.mark.evidence


@pytest.fixture
def summary():
    return make_summary("s1", [make_event("e1", 60, frames=["f-ref"])], start=0, end=120)


class TestTimeScore:
    def test_at_event_inside_window(self, summary):
        session = summary.sessions[0]

        assert time_score(make_frame_metadata("f", 60), session, EvidenceSettings()) == 1.0

    def test_decays_with_distance_from_nearest_event(self, summary):
        session = summary.sessions[0]

        score = time_score(make_frame_metadata("f", 90), session, EvidenceSettings())

        assert score == pytest.approx(0.5 + 0.5 * (1 - 30 / 300))

    def test_outside_window_decays_exponentially(self, summary):
        session = summary.sessions[0]

        score = time_score(make_frame_metadata("f", 180), session, EvidenceSettings())

        assert score == pytest.approx(0.5 * math.exp(-1))

    def test_beyond_max_distance_is_zero(self, summary):
        session = summary.sessions[0]

        assert time_score(make_frame_metadata("f", 500), session, EvidenceSettings()) == 0.0

    def test_window_without_events(self):
        session = make_summary("s", [], start=0, end=100).sessions[0]

        assert time_score(make_frame_metadata("f", 50), session, EvidenceSettings()) == 0.5


class TestScoreFrame:
    def test_full_match(self, summary):
        correlated = score_frame(
            make_frame_metadata("f", 60), summary.sessions[0], EvidenceSettings()
        )

        assert correlated.correlation_score == pytest.approx(1.0)
        assert correlated.reasons == [REASON_TEMPORAL, REASON_APPLICATION, REASON_TITLE]

    def test_other_application(self, summary):
        frame = make_frame_metadata("f", 90, app_identifier="com.other", window_title="Xyz")

        correlated = score_frame(frame, summary.sessions[0], EvidenceSettings())

        assert correlated.correlation_score == pytest.approx(0.5 * 0.95)
        assert correlated.reasons == [REASON_TEMPORAL]

    def test_zero_time_score_zeroes_everything(self, summary):
        correlated = score_frame(
            make_frame_metadata("f", 1000), summary.sessions[0], EvidenceSettings()
        )

        assert correlated.correlation_score == 0.0
        assert correlated.reasons == []


class TestCorrelateFrames:
    def test_threshold_order_and_exclusions(self, summary):
        frames = [
            make_frame_metadata("f-ref", 60),
            make_frame_metadata("f-near", 60),
            make_frame_metadata("f-after", 180),
            make_frame_metadata("f-other", 90, app_identifier="com.other", window_title="Xyz"),
            make_frame_metadata("f-far", 500),
        ]

        correlated = correlate_frames(summary, frames, exclude={"f-ref"})

        assert [c.frame_id for c in correlated] == ["f-near", "f-after"]
        assert correlated[1].reasons == [REASON_APPLICATION, REASON_TITLE]

    def test_ties_break_by_time_then_id(self, summary):
        frames = [
            make_frame_metadata("b", 60),
            make_frame_metadata("a", 60),
        ]

        correlated = correlate_frames(summary, frames, exclude=set())

        assert [c.frame_id for c in correlated] == ["a", "b"]

    def test_capped(self, summary):
        frames = [make_frame_metadata(f"f{i}", 55 + i) for i in range(5)]

        correlated = correlate_frames(
            summary, frames, exclude=set(), settings=EvidenceSettings(max_correlated_frames=2)
        )

        assert len(correlated) == 2

    def test_summary_without_sessions(self):
        empty = ActivitySummary(id="s")

        assert correlate_frames(empty, [make_frame_metadata("f", 0)], exclude=set()) == []
