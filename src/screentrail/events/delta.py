"""
Snapshot alignment.

Two recognition snapshots of the same context are aligned in two passes,
each solved as an assignment problem with
``scipy.optimize.linear_sum_assignment``:

1. Unchanged: identical normalized text whose centers moved at most
   ``max_move_distance`` pixels (minimum total movement).
2. Modified: remaining elements whose regions overlap with IoU of at least
   ``modified_iou_threshold`` and whose text differs (maximum total IoU).

Before pass 2, an element with two or more candidates scoring within
``ambiguity_margin`` of its best candidate is ambiguous: it is reported as
added/removed and recorded on the delta instead of being force-matched.
Whatever is left unmatched is added (current) or removed (previous).
"""

import logging

from collections.abc import Sequence

import numpy as np

from scipy.optimize import linear_sum_assignment

from screentrail.config import EventSettings
from screentrail.models.events import AlignmentAmbiguity, ModifiedPair, RecognitionDelta
from screentrail.models.recognition import RecognitionResult
from screentrail.utils.geometry import center_distance_matrix, iou_matrix
from screentrail.utils.text import normalize_text

logger = logging.getLogger(__name__)

# Cost assigned to infeasible pairs; larger than any feasible cost
_INFEASIBLE = 1e9


def _assign(cost: np.ndarray, feasible: np.ndarray) -> list[tuple[int, int]]:
    """Minimum-cost matching restricted to feasible pairs."""
    if cost.size == 0 or not feasible.any():
        return []
    rows, cols = linear_sum_assignment(np.where(feasible, cost, _INFEASIBLE))
    return [(int(r), int(c)) for r, c in zip(rows, cols) if feasible[r, c]]


def _usable(
    results: Sequence[RecognitionResult], min_confidence: float
) -> list[int]:
    return [
        i
        for i, r in enumerate(results)
        if normalize_text(r.text) and r.confidence >= min_confidence
    ]


def _ambiguous_rows(scores: np.ndarray, feasible: np.ndarray, margin: float) -> set[int]:
    """Rows with two or more feasible candidates within ``margin`` of the best."""
    ambiguous: set[int] = set()
    for row in range(scores.shape[0]):
        candidates = scores[row][feasible[row]]
        if candidates.size < 2:
            continue
        best = candidates.max()
        if np.count_nonzero(candidates >= best - margin) >= 2:
            ambiguous.add(row)
    return ambiguous


def compute_delta(
    previous: Sequence[RecognitionResult],
    current: Sequence[RecognitionResult],
    settings: EventSettings | None = None,
) -> RecognitionDelta:
    """
    Compute additions, removals and modifications between two snapshots.

    Deterministic: the same inputs always produce the same delta.

    Args:
        previous: Earlier snapshot for the context
        current: Newer snapshot for the context
        settings: Alignment thresholds

    Returns:
        RecognitionDelta with added/removed in input order and modified
        pairs in previous-snapshot order
    """
    settings = settings or EventSettings()

    prev_idx = _usable(previous, settings.min_result_confidence)
    curr_idx = _usable(current, settings.min_result_confidence)
    prev_items = [previous[i] for i in prev_idx]
    curr_items = [current[i] for i in curr_idx]
    prev_text = [normalize_text(r.text) for r in prev_items]
    curr_text = [normalize_text(r.text) for r in curr_items]

    prev_regions = [r.bounding_region for r in prev_items]
    curr_regions = [r.bounding_region for r in curr_items]
    same_text = np.array(
        [[p == c for c in curr_text] for p in prev_text], dtype=bool
    ).reshape(len(prev_items), len(curr_items))

    # Pass 1: unchanged elements
    distances = center_distance_matrix(prev_regions, curr_regions)
    unchanged = _assign(distances, same_text & (distances <= settings.max_move_distance))
    matched_prev = {p for p, _ in unchanged}
    matched_curr = {c for _, c in unchanged}

    # Pass 2: modified elements
    overlaps = iou_matrix(prev_regions, curr_regions)
    feasible = (overlaps >= settings.modified_iou_threshold) & ~same_text
    if matched_prev:
        feasible[sorted(matched_prev), :] = False
    if matched_curr:
        feasible[:, sorted(matched_curr)] = False

    ambiguous_prev = _ambiguous_rows(overlaps, feasible, settings.ambiguity_margin)
    ambiguous_curr = _ambiguous_rows(overlaps.T, feasible.T, settings.ambiguity_margin)
    ambiguities: list[AlignmentAmbiguity] = []
    for p in sorted(ambiguous_prev):
        ambiguities.append(
            AlignmentAmbiguity(
                previous_indices=[prev_idx[p]],
                current_indices=[curr_idx[c] for c in np.flatnonzero(feasible[p])],
                reason="previous element overlaps several current elements equally",
            )
        )
    for c in sorted(ambiguous_curr):
        ambiguities.append(
            AlignmentAmbiguity(
                current_indices=[curr_idx[c]],
                previous_indices=[prev_idx[p] for p in np.flatnonzero(feasible[:, c])],
                reason="current element overlaps several previous elements equally",
            )
        )
    # Everything touching an ambiguous element stays unmatched
    blocked_prev = set(ambiguous_prev)
    blocked_curr = set(ambiguous_curr)
    for p in ambiguous_prev:
        blocked_curr.update(int(c) for c in np.flatnonzero(feasible[p]))
    for c in ambiguous_curr:
        blocked_prev.update(int(p) for p in np.flatnonzero(feasible[:, c]))
    if blocked_prev:
        feasible[sorted(blocked_prev), :] = False
    if blocked_curr:
        feasible[:, sorted(blocked_curr)] = False

    modified_pairs = sorted(_assign(-overlaps, feasible))
    matched_prev.update(p for p, _ in modified_pairs)
    matched_curr.update(c for _, c in modified_pairs)

    delta = RecognitionDelta(
        previous_set=list(previous),
        current_set=list(current),
        added=[r for i, r in enumerate(curr_items) if i not in matched_curr],
        removed=[r for i, r in enumerate(prev_items) if i not in matched_prev],
        modified=[
            ModifiedPair(
                previous=prev_items[p],
                current=curr_items[c],
                iou=float(min(1.0, overlaps[p, c])),
            )
            for p, c in modified_pairs
        ],
        ambiguities=ambiguities,
    )

    if ambiguities:
        logger.debug(f"Alignment left {len(ambiguities)} ambiguous element(s) unmatched")
    logger.debug(
        f"Delta: {len(unchanged)} unchanged, {len(delta.modified)} modified, "
        f"{len(delta.added)} added, {len(delta.removed)} removed"
    )
    return delta
