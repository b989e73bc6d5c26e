"""Bounding-region geometry helpers."""

import math

from collections.abc import Sequence

import numpy as np

from screentrail.models.recognition import BoundingRegion


def iou(a: BoundingRegion, b: BoundingRegion) -> float:
    """
    Intersection over union of two regions.

    Returns:
        Value in [0, 1]; 0.0 when either region has zero area
    """
    ix = max(0.0, min(a.right, b.right) - max(a.x, b.x))
    iy = max(0.0, min(a.bottom, b.bottom) - max(a.y, b.y))
    intersection = ix * iy
    union = a.area + b.area - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def iou_matrix(
    previous: Sequence[BoundingRegion], current: Sequence[BoundingRegion]
) -> np.ndarray:
    """
    Pairwise IoU between two region lists.

    Returns:
        Array of shape (len(previous), len(current))
    """
    if not previous or not current:
        return np.zeros((len(previous), len(current)))

    p = np.array([[r.x, r.y, r.right, r.bottom] for r in previous], dtype=float)
    c = np.array([[r.x, r.y, r.right, r.bottom] for r in current], dtype=float)

    ix = np.clip(
        np.minimum(p[:, None, 2], c[None, :, 2]) - np.maximum(p[:, None, 0], c[None, :, 0]),
        0.0,
        None,
    )
    iy = np.clip(
        np.minimum(p[:, None, 3], c[None, :, 3]) - np.maximum(p[:, None, 1], c[None, :, 1]),
        0.0,
        None,
    )
    intersection = ix * iy
    area_p = (p[:, 2] - p[:, 0]) * (p[:, 3] - p[:, 1])
    area_c = (c[:, 2] - c[:, 0]) * (c[:, 3] - c[:, 1])
    union = area_p[:, None] + area_c[None, :] - intersection

    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.where(union > 0, intersection / union, 0.0)
    return result


def center_distance(a: BoundingRegion, b: BoundingRegion) -> float:
    """Euclidean distance between region centers."""
    (ax, ay), (bx, by) = a.center, b.center
    return math.hypot(ax - bx, ay - by)


def center_distance_matrix(
    previous: Sequence[BoundingRegion], current: Sequence[BoundingRegion]
) -> np.ndarray:
    """Pairwise center distances, shape (len(previous), len(current))."""
    if not previous or not current:
        return np.zeros((len(previous), len(current)))
    p = np.array([r.center for r in previous], dtype=float)
    c = np.array([r.center for r in current], dtype=float)
    return np.linalg.norm(p[:, None, :] - c[None, :, :], axis=2)


def union_region(regions: Sequence[BoundingRegion]) -> BoundingRegion | None:
    """Smallest region containing all given regions, or None for no regions."""
    if not regions:
        return None
    left = min(r.x for r in regions)
    top = min(r.y for r in regions)
    right = max(r.right for r in regions)
    bottom = max(r.bottom for r in regions)
    return BoundingRegion(x=left, y=top, width=right - left, height=bottom - top)
