"""Bidirectional evidence graph construction and lookup."""

from collections.abc import Iterable, Mapping

from screentrail.models.evidence import BidirectionalLinks


def _append(index: dict[str, list[str]], key: str, value: str) -> None:
    values = index.setdefault(key, [])
    if value not in values:
        values.append(value)


def build_links(
    summary_id: str,
    event_ids: Iterable[str],
    event_evidence_map: Mapping[str, list[str]],
    correlated_frame_ids: Iterable[str] = (),
) -> BidirectionalLinks:
    """
    Build summary→event and event→frame edges, their closure and inverses.

    Correlated frames attach to the summary only; they are not evidence for
    any particular event.
    """
    links = BidirectionalLinks()
    links.summary_to_events[summary_id] = []
    links.summary_to_frames[summary_id] = []

    for event_id in event_ids:
        _append(links.summary_to_events, summary_id, event_id)
        _append(links.event_to_summaries, event_id, summary_id)
        links.event_to_frames.setdefault(event_id, [])

        for frame_id in event_evidence_map.get(event_id, []):
            _append(links.event_to_frames, event_id, frame_id)
            _append(links.frame_to_events, frame_id, event_id)
            _append(links.summary_to_frames, summary_id, frame_id)
            _append(links.frame_to_summaries, frame_id, summary_id)

    for frame_id in correlated_frame_ids:
        _append(links.summary_to_frames, summary_id, frame_id)
        _append(links.frame_to_summaries, frame_id, summary_id)

    return links


def neighbors(links: BidirectionalLinks, node_id: str) -> list[str]:
    """All nodes adjacent to ``node_id`` in either direction."""
    result: list[str] = []
    for index in (
        links.summary_to_events,
        links.summary_to_frames,
        links.event_to_summaries,
        links.event_to_frames,
        links.frame_to_events,
        links.frame_to_summaries,
    ):
        for other in index.get(node_id, []):
            if other not in result:
                result.append(other)
    return result
