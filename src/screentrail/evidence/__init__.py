"""Evidence linking, confidence propagation and trace."""

from screentrail.evidence.confidence import propagate_confidence
from screentrail.evidence.correlation import correlate_frames
from screentrail.evidence.export import (
    EvidenceDocument,
    evidence_report,
    link_document,
    load_document,
    to_document,
    to_json,
)
from screentrail.evidence.graph import build_links, neighbors
from screentrail.evidence.linker import EvidenceLinker

__all__ = [
    "EvidenceDocument",
    "EvidenceLinker",
    "build_links",
    "correlate_frames",
    "evidence_report",
    "link_document",
    "load_document",
    "neighbors",
    "propagate_confidence",
    "to_document",
    "to_json",
]
