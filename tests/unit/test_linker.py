"""Tests for the evidence linker."""

import logging

import pytest

from screentrail.evidence import EvidenceLinker

from tests.helpers.builders import make_event, make_frame_metadata, make_summary

pytestmark = pytest.mark.evidence


@pytest.fixture
def linker():
    return EvidenceLinker()


@pytest.fixture
def frames():
    return [
        make_frame_metadata("f1", 10, 0.95),
        make_frame_metadata("f2", 20, 0.85),
        make_frame_metadata("f-extra", 30, 0.9),
    ]


def complete_summary():
    return make_summary(
        "s1",
        [
            make_event("e1", 10, confidence=0.9, frames=["f1"]),
            make_event("e2", 20, confidence=0.8, frames=["f2"]),
        ],
    )


def partial_summary():
    return make_summary(
        "s1",
        [
            make_event("e1", 10, confidence=0.9, frames=["f1"]),
            make_event("e2", 20, confidence=0.8),
        ],
    )


class TestCreateEvidenceReference:
    def test_direct_evidence(self, linker, frames):
        reference = linker.create_evidence_reference(complete_summary(), frames)

        assert reference.summary_id == "s1"
        assert reference.direct_evidence_frames == ["f1", "f2"]
        assert reference.event_evidence_map == {"e1": ["f1"], "e2": ["f2"]}

    def test_event_map_covers_summary_events_only(self, linker, frames):
        summary = make_summary(
            "s1", [make_event("e1", 10, frames=["f1", "f1"]), make_event("e2", 20)]
        )

        reference = linker.create_evidence_reference(summary, frames)

        assert set(reference.event_evidence_map) == {"e1", "e2"}
        assert reference.event_evidence_map["e1"] == ["f1"]
        assert reference.event_evidence_map["e2"] == []

    def test_correlated_frames_attach_to_summary(self, linker, frames):
        reference = linker.create_evidence_reference(complete_summary(), frames)
        links = reference.bidirectional_links

        assert [c.frame_id for c in reference.correlated_frames] == ["f-extra"]
        assert "f-extra" not in reference.direct_evidence_frames
        assert links.summary_to_frames["s1"] == ["f1", "f2", "f-extra"]
        assert links.frame_to_summaries["f-extra"] == ["s1"]
        assert "f-extra" not in links.frame_to_events

    def test_links_are_symmetric(self, linker, frames):
        links = linker.create_evidence_reference(complete_summary(), frames).bidirectional_links

        for event_id, frame_ids in links.event_to_frames.items():
            for frame_id in frame_ids:
                assert event_id in links.frame_to_events[frame_id]
        for event_id in links.summary_to_events["s1"]:
            assert links.event_to_summaries[event_id] == ["s1"]

    def test_relinking_replaces(self, linker, frames):
        linker.create_evidence_reference(partial_summary(), frames)

        linker.create_evidence_reference(complete_summary(), frames)

        assert linker.summary_ids == ["s1"]
        assert linker.trace_evidence_path("s1").trace_complete

    def test_remove(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)

        assert linker.remove("s1")
        assert not linker.remove("s1")
        assert linker.get_reference("s1") is None


class TestTrace:
    def test_complete_trace_in_breadth_first_order(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)

        trace = linker.trace_evidence_path("s1")

        assert trace.trace_complete
        assert [(s.level, s.id) for s in trace.trace_path] == [
            ("summary", "s1"),
            ("event", "e1"),
            ("event", "e2"),
            ("frame", "f1"),
            ("frame", "f2"),
        ]
        assert trace.total_confidence == pytest.approx(0.1 * 0.8 + 0.3 * 0.85 + 0.6 * 0.9)

    def test_shared_frame_visited_once(self, linker, frames):
        summary = make_summary(
            "s1", [make_event("e1", 10, frames=["f1"]), make_event("e2", 12, frames=["f1"])]
        )
        linker.create_evidence_reference(summary, frames)

        trace = linker.trace_evidence_path("s1")

        assert [s.id for s in trace.trace_path] == ["s1", "e1", "e2", "f1"]

    def test_frame_sharing_an_event_id_is_still_visited(self, linker):
        summary = make_summary(
            "s1", [make_event("e1", 10, frames=["e2"]), make_event("e2", 12, frames=["f2"])]
        )
        linker.create_evidence_reference(
            summary, [make_frame_metadata("e2", 10, 0.7), make_frame_metadata("f2", 12, 0.8)]
        )

        trace = linker.trace_evidence_path("s1")

        assert trace.trace_complete
        assert [(s.level, s.id) for s in trace.trace_path] == [
            ("summary", "s1"),
            ("event", "e1"),
            ("event", "e2"),
            ("frame", "e2"),
            ("frame", "f2"),
        ]

    def test_event_without_frames_makes_trace_incomplete(self, linker, frames):
        linker.create_evidence_reference(partial_summary(), frames)

        trace = linker.trace_evidence_path("s1")

        assert not trace.trace_complete
        assert [s.id for s in trace.trace_path] == ["s1", "e1", "e2", "f1"]
        weighted = 0.1 * 0.45 + 0.3 * 0.85 + 0.6 * 0.95
        assert trace.total_confidence == pytest.approx(weighted * 0.5)

    def test_summary_without_events(self, linker):
        linker.create_evidence_reference(make_summary("s1", []))

        trace = linker.trace_evidence_path("s1")

        assert trace.trace_complete
        assert [s.level for s in trace.trace_path] == ["summary"]
        assert trace.total_confidence == 0.0

    def test_unknown_summary(self, linker, caplog):
        with caplog.at_level(logging.WARNING, logger="screentrail.evidence.linker"):
            trace = linker.trace_evidence_path("missing")

        assert not trace.trace_complete
        assert trace.total_confidence == 0.0
        assert trace.trace_path == []
        assert "unknown summary" in caplog.text


class TestAddFrameEvidence:
    def test_completes_trace_and_updates_confidence(self, linker, frames):
        summary = partial_summary()
        linker.create_evidence_reference(summary, frames)

        propagation = linker.add_frame_evidence("s1", "e2", make_frame_metadata("f-new", 20, 0.3))

        assert propagation.overall_confidence == pytest.approx(0.3)
        assert linker.get_reference("s1").event_evidence_map["e2"] == ["f-new"]
        assert linker.trace_evidence_path("s1").trace_complete
        assert summary.sessions[0].events[1].evidence_frames == []

    def test_weaker_frame_does_not_raise_confidence(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)
        before = linker.get_propagation("s1").overall_confidence

        after = linker.add_frame_evidence(
            "s1", "e1", make_frame_metadata("f-weak", 11, before - 0.1)
        ).overall_confidence

        assert after <= before

    def test_frame_above_overall_does_not_raise_confidence(self, linker):
        summary = make_summary(
            "s",
            [
                make_event("e1", 10, confidence=0.9, frames=["f1"]),
                make_event("e2", 20, confidence=0.5, frames=["f2"]),
                make_event("e3", 30, confidence=0.9),
            ],
        )
        linker.create_evidence_reference(
            summary, [make_frame_metadata("f1", 10, 0.95), make_frame_metadata("f2", 20, 0.5)]
        )
        before = linker.get_propagation("s").overall_confidence

        after = linker.add_frame_evidence(
            "s", "e1", make_frame_metadata("f3", 12, 0.92)
        ).overall_confidence

        assert before == pytest.approx(3 / 7)
        assert after <= before + 1e-12

    def test_same_frame_twice_is_idempotent(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)

        linker.add_frame_evidence("s1", "e1", frames[0])

        assert linker.get_reference("s1").event_evidence_map["e1"] == ["f1"]

    def test_unknown_summary(self, linker):
        with pytest.raises(KeyError):
            linker.add_frame_evidence("missing", "e1", make_frame_metadata("f", 0))

    def test_unknown_event(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)

        with pytest.raises(ValueError, match="does not belong"):
            linker.add_frame_evidence("s1", "e9", make_frame_metadata("f", 0))


class TestQueries:
    def test_neighbors(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)

        assert linker.neighbors("s1", "e1") == ["s1", "f1"]
        assert linker.neighbors("s1", "f1") == ["e1", "s1"]
        assert linker.neighbors("s1", "s1") == ["e1", "e2", "f1", "f2", "f-extra"]
        assert linker.neighbors("missing", "e1") == []

    def test_calculate_confidence_propagation(self, linker, frames):
        linker.create_evidence_reference(complete_summary(), frames)

        propagation = linker.calculate_confidence_propagation("s1")

        assert propagation == linker.get_propagation("s1")
        assert propagation.overall_confidence == pytest.approx(0.8)

    def test_calculate_for_unknown_summary(self, linker):
        with pytest.raises(KeyError):
            linker.calculate_confidence_propagation("missing")
