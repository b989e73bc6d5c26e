"""
Serialized evidence export.

Evidence models dump to nested, insertion-ordered dicts with camelCase keys,
ready to embed in a generated report or write out as JSON.
"""

import json

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from screentrail.evidence.linker import EvidenceLinker
from screentrail.models.evidence import ActivitySummary, EvidenceModel, FrameMetadata


class EvidenceDocument(EvidenceModel):
    """Input document for offline linking: summaries plus known frames."""

    summaries: list[ActivitySummary] = Field(default_factory=list)
    frames: list[FrameMetadata] = Field(default_factory=list)


def to_document(model: BaseModel) -> dict[str, Any]:
    """Dump an evidence model to a JSON-compatible dict with canonical keys."""
    return model.model_dump(mode="json", by_alias=True)


def to_json(model: BaseModel, indent: int | None = 2) -> str:
    return model.model_dump_json(by_alias=True, indent=indent)


def evidence_report(linker: EvidenceLinker, summary_id: str) -> dict[str, Any]:
    """
    Reference, propagation and trace for one summary as a single document.

    Raises:
        KeyError: If the summary is not linked
    """
    reference = linker.get_reference(summary_id)
    propagation = linker.get_propagation(summary_id)
    if reference is None or propagation is None:
        raise KeyError(f"Summary not linked: {summary_id}")

    return {
        "summaryId": summary_id,
        "evidenceReference": to_document(reference),
        "confidencePropagation": to_document(propagation),
        "evidenceTrace": to_document(linker.trace_evidence_path(summary_id)),
    }


def load_document(path: Path) -> EvidenceDocument:
    """
    Read an evidence document from JSON.

    Raises:
        ValueError: If the file is not valid JSON or does not match the schema
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return EvidenceDocument.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"Invalid evidence document {path}: {e}") from e


def link_document(
    document: EvidenceDocument, linker: EvidenceLinker | None = None
) -> EvidenceLinker:
    """Link every summary in a document against the document's frames."""
    linker = linker or EvidenceLinker()
    for summary in document.summaries:
        linker.create_evidence_reference(summary, document.frames)
    return linker
