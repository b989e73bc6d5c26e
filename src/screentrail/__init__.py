"""
screentrail: perception-to-evidence pipeline.

Turns per-frame screen text recognition into application-aware structured
elements, delta-based activity events, and a confidence-weighted evidence
graph linking summaries back to the frames that justify them.
"""

from typing import Any

__all__ = ["EvidenceLinker", "PerceptionPipeline"]


def __getattr__(name: str) -> Any:
    """Lazy load the main entry points to keep CLI startup light."""
    if name == "PerceptionPipeline":
        from screentrail.pipeline import PerceptionPipeline

        return PerceptionPipeline
    if name == "EvidenceLinker":
        from screentrail.evidence.linker import EvidenceLinker

        return EvidenceLinker
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
