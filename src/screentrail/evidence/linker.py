"""
Evidence linker.

Links activity summaries to the events they narrate and the frames those
events were observed in, keeps the resulting graph per summary id, and
answers confidence and trace queries against it.

Example:
    >>> linker = EvidenceLinker()
    >>> reference = linker.create_evidence_reference(summary, frames)
    >>> trace = linker.trace_evidence_path(summary.id)
    >>> trace.trace_complete
    True
"""

import logging

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from screentrail.config import EvidenceSettings
from screentrail.constants import EvidenceConstants as EC
from screentrail.evidence.confidence import propagate_confidence
from screentrail.evidence.correlation import correlate_frames
from screentrail.evidence.graph import build_links, neighbors
from screentrail.models.evidence import (
    ActivitySummary,
    ConfidencePropagation,
    EvidenceReference,
    EvidenceTrace,
    EvidenceTraceStep,
    FrameMetadata,
    TraceLevel,
)

logger = logging.getLogger(__name__)


@dataclass
class LinkedSummary:
    """Everything the linker holds for one summary."""

    summary: ActivitySummary
    frames: dict[str, FrameMetadata]
    reference: EvidenceReference
    propagation: ConfidencePropagation


class EvidenceLinker:
    """Builds and stores evidence graphs keyed by summary id."""

    def __init__(self, settings: EvidenceSettings | None = None):
        self.settings = settings or EvidenceSettings()
        self._linked: dict[str, LinkedSummary] = {}

    # ========================================================================
    # Graph Construction
    # ========================================================================

    def create_evidence_reference(
        self, summary: ActivitySummary, frames: Iterable[FrameMetadata] = ()
    ) -> EvidenceReference:
        """
        Link a summary to its events and frames and store the result.

        Linking the same summary id again replaces the stored graph.

        Args:
            summary: Summary with sessions and events
            frames: Known frames, both referenced and candidates for correlation

        Returns:
            The summary's evidence reference
        """
        frame_index = {frame.id: frame for frame in frames}
        linked = self._link(summary, frame_index)
        self._linked[summary.id] = linked

        logger.info(
            f"Linked summary {summary.id}: {len(linked.reference.event_evidence_map)} event(s), "
            f"{len(linked.reference.direct_evidence_frames)} direct frame(s), "
            f"{len(linked.reference.correlated_frames)} correlated frame(s)"
        )
        return linked.reference

    def _link(
        self, summary: ActivitySummary, frames: dict[str, FrameMetadata]
    ) -> LinkedSummary:
        events = summary.events
        event_map = {event.id: list(dict.fromkeys(event.evidence_frames)) for event in events}
        direct = list(dict.fromkeys(fid for fids in event_map.values() for fid in fids))

        correlated = correlate_frames(summary, frames.values(), set(direct), self.settings)
        links = build_links(
            summary.id,
            event_map.keys(),
            event_map,
            (c.frame_id for c in correlated),
        )

        reference = EvidenceReference(
            summary_id=summary.id,
            direct_evidence_frames=direct,
            correlated_frames=correlated,
            event_evidence_map=event_map,
            bidirectional_links=links,
        )
        propagation = propagate_confidence(summary, reference, frames, self.settings)

        return LinkedSummary(
            summary=summary,
            frames=frames,
            reference=reference,
            propagation=propagation,
        )

    def add_frame_evidence(
        self, summary_id: str, event_id: str, frame: FrameMetadata
    ) -> ConfidencePropagation:
        """
        Attach a frame to one of a summary's events and recompute confidence.

        Raises:
            KeyError: If the summary is not linked
            ValueError: If the event does not belong to the summary
        """
        linked = self._linked.get(summary_id)
        if linked is None:
            raise KeyError(f"Summary not linked: {summary_id}")

        found = False
        sessions = []
        for session in linked.summary.sessions:
            events = []
            for event in session.events:
                if event.id == event_id:
                    found = True
                    if frame.id not in event.evidence_frames:
                        event = event.model_copy(
                            update={"evidence_frames": [*event.evidence_frames, frame.id]}
                        )
                events.append(event)
            sessions.append(session.model_copy(update={"events": events}))

        if not found:
            raise ValueError(f"Event {event_id} does not belong to summary {summary_id}")

        summary = linked.summary.model_copy(update={"sessions": sessions})
        frames = {**linked.frames, frame.id: frame}
        self._linked[summary_id] = self._link(summary, frames)

        logger.debug(f"Added frame {frame.id} to event {event_id} of summary {summary_id}")
        return self._linked[summary_id].propagation

    def remove(self, summary_id: str) -> bool:
        """Forget a summary's graph. Returns True if it was linked."""
        return self._linked.pop(summary_id, None) is not None

    # ========================================================================
    # Queries
    # ========================================================================

    @property
    def summary_ids(self) -> list[str]:
        return list(self._linked)

    def get_reference(self, summary_id: str) -> EvidenceReference | None:
        linked = self._linked.get(summary_id)
        return linked.reference if linked else None

    def get_propagation(self, summary_id: str) -> ConfidencePropagation | None:
        linked = self._linked.get(summary_id)
        return linked.propagation if linked else None

    def calculate_confidence_propagation(self, summary_id: str) -> ConfidencePropagation:
        """
        Recompute confidence for a linked summary from its stored graph.

        Raises:
            KeyError: If the summary is not linked
        """
        linked = self._linked.get(summary_id)
        if linked is None:
            raise KeyError(f"Summary not linked: {summary_id}")
        linked.propagation = propagate_confidence(
            linked.summary, linked.reference, linked.frames, self.settings
        )
        return linked.propagation

    def neighbors(self, summary_id: str, node_id: str) -> list[str]:
        """Nodes adjacent to ``node_id`` in a summary's graph."""
        linked = self._linked.get(summary_id)
        if linked is None:
            return []
        return neighbors(linked.reference.bidirectional_links, node_id)

    # ========================================================================
    # Trace
    # ========================================================================

    def _node_confidence(self, linked: LinkedSummary, level: TraceLevel, node_id: str) -> float:
        propagation = linked.propagation
        if level == "summary":
            return propagation.overall_confidence
        if level == "event":
            return propagation.event_confidences[node_id].overall
        frame_conf = propagation.frame_confidences.get(node_id)
        return frame_conf.overall if frame_conf else self.settings.missing_frame_confidence

    def trace_evidence_path(self, summary_id: str) -> EvidenceTrace:
        """
        Breadth-first walk from a summary through its events to their frames.

        The trace is complete when every event of the summary reaches at least
        one frame. An incomplete trace, or a trace for an unknown summary, is a
        normal result rather than an error.

        ``total_confidence`` is the level-weighted mean of node confidences
        (summary 0.1, event 0.3, frame 0.6, renormalized over levels present)
        scaled by the fraction of events that reach a frame.
        """
        linked = self._linked.get(summary_id)
        if linked is None:
            logger.warning(f"Trace requested for unknown summary: {summary_id}")
            return EvidenceTrace(summary_id=summary_id, trace_complete=False, total_confidence=0.0)

        links = linked.reference.bidirectional_links
        path: list[EvidenceTraceStep] = []
        visited: set[tuple[TraceLevel, str]] = {("summary", summary_id)}
        queue: deque[tuple[TraceLevel, str]] = deque([("summary", summary_id)])

        while queue:
            level, node_id = queue.popleft()
            path.append(
                EvidenceTraceStep(
                    level=level,
                    id=node_id,
                    confidence=self._node_confidence(linked, level, node_id),
                )
            )
            if level == "summary":
                children = [("event", e) for e in links.summary_to_events.get(node_id, [])]
            elif level == "event":
                children = [("frame", f) for f in links.event_to_frames.get(node_id, [])]
            else:
                children = []
            for child_level, child_id in children:
                if (child_level, child_id) not in visited:
                    visited.add((child_level, child_id))
                    queue.append((child_level, child_id))

        event_ids = links.summary_to_events.get(summary_id, [])
        reached = [e for e in event_ids if links.event_to_frames.get(e)]
        trace_complete = len(reached) == len(event_ids)
        reach_fraction = len(reached) / len(event_ids) if event_ids else 1.0

        weighted = 0.0
        total_weight = 0.0
        for level, weight in EC.TRACE_LEVEL_WEIGHTS.items():
            confidences = [step.confidence for step in path if step.level == level]
            if confidences:
                weighted += weight * sum(confidences) / len(confidences)
                total_weight += weight
        total = (weighted / total_weight) * reach_fraction if total_weight else 0.0

        if not trace_complete:
            logger.info(
                f"Trace for {summary_id} incomplete: {len(reached)}/{len(event_ids)} "
                f"event(s) reach a frame"
            )

        return EvidenceTrace(
            summary_id=summary_id,
            trace_complete=trace_complete,
            total_confidence=max(0.0, min(1.0, total)),
            trace_path=path,
        )
