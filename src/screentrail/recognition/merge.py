"""Hybrid merge of two engines' results for the same frame."""

import logging

from collections.abc import Sequence

from screentrail.models.recognition import RecognitionResult
from screentrail.utils.geometry import iou_matrix

logger = logging.getLogger(__name__)


def merge_results(
    primary: Sequence[RecognitionResult],
    secondary: Sequence[RecognitionResult],
    iou_threshold: float,
) -> list[RecognitionResult]:
    """
    Merge two result sets region by region.

    Regions overlapping above ``iou_threshold`` are treated as the same text
    and only the higher-confidence result is kept (primary wins ties).
    Non-overlapping regions from both engines are all kept. Output order is
    primary order followed by secondary-only regions.

    Args:
        primary: Results from the primary engine
        secondary: Results from the secondary engine
        iou_threshold: Overlap above which two regions are the same

    Returns:
        Merged result list
    """
    if not primary:
        return list(secondary)
    if not secondary:
        return list(primary)

    overlaps = iou_matrix(
        [r.bounding_region for r in primary], [r.bounding_region for r in secondary]
    )

    merged: list[RecognitionResult] = []
    consumed: set[int] = set()

    for i, result in enumerate(primary):
        row = overlaps[i].copy()
        if consumed:
            row[list(consumed)] = 0.0
        j = int(row.argmax())
        if row[j] > iou_threshold:
            consumed.add(j)
            other = secondary[j]
            merged.append(other if other.confidence > result.confidence else result)
        else:
            merged.append(result)

    merged.extend(r for j, r in enumerate(secondary) if j not in consumed)
    logger.debug(
        f"Hybrid merge: {len(primary)} primary + {len(secondary)} secondary "
        f"-> {len(merged)} ({len(consumed)} overlapping)"
    )
    return merged
