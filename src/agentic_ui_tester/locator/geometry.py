"""Rectangle helpers shared by the detectors, fusion and zoom steps."""
import logging
from typing import Iterable

import numpy as np
from sklearn.cluster import DBSCAN

from .types import BoundingBox

log = logging.getLogger(__name__)

# Keeps IoU == threshold inside eps despite float rounding.
_EPS_TOLERANCE = 1e-9


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """Intersection area over union area. 0 for disjoint or empty boxes."""
    inter = a.intersection(b)
    if inter is None:
        return 0.0
    union_area = a.area + b.area - inter.area
    if union_area <= 0:
        return 0.0
    return inter.area / union_area


def dedupe(boxes: Iterable[BoundingBox]) -> list[BoundingBox]:
    """Drop exact duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for box in boxes:
        if box not in seen:
            seen.add(box)
            result.append(box)
    return result


def intersections(first: Iterable[BoundingBox], second: Iterable[BoundingBox]) -> list[BoundingBox]:
    """Every non-empty pairwise intersection of a box from *first* with a box from *second*."""
    second = list(second)
    result = []
    for a in first:
        for b in second:
            inter = a.intersection(b)
            if inter is not None:
                result.append(inter)
    return dedupe(result)


def merge_overlapping(boxes: Iterable[BoundingBox]) -> list[BoundingBox]:
    """Repeatedly replace overlapping boxes by their union until none overlap."""
    merged = list(boxes)
    changed = True
    while changed:
        changed = False
        result: list[BoundingBox] = []
        for box in merged:
            for i, existing in enumerate(result):
                if existing.intersects(box):
                    result[i] = existing.union(box)
                    changed = True
                    break
            else:
                result.append(box)
        merged = result
    return merged


def common_area(boxes: Iterable[BoundingBox]) -> BoundingBox:
    """Smallest box containing every input box. Empty box for no input."""
    boxes = list(boxes)
    if not boxes:
        return BoundingBox(0, 0, 0, 0)
    left = min(b.x for b in boxes)
    top = min(b.y for b in boxes)
    right = max(b.right for b in boxes)
    bottom = max(b.bottom for b in boxes)
    return BoundingBox(left, top, right - left, bottom - top)


def average_box(boxes: list[BoundingBox]) -> BoundingBox:
    """Coordinate-wise mean, truncated to integers."""
    n = len(boxes)
    return BoundingBox(
        int(sum(b.x for b in boxes) / n),
        int(sum(b.y for b in boxes) / n),
        int(sum(b.width for b in boxes) / n),
        int(sum(b.height for b in boxes) / n),
    )


def iou_distance_matrix(boxes: list[BoundingBox]) -> np.ndarray:
    n = len(boxes)
    dist = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        for j in range(i + 1, n):
            d = 1.0 - iou(boxes[i], boxes[j])
            dist[i, j] = dist[j, i] = d
    return dist


def cluster_boxes(boxes: list[BoundingBox], min_iou: float, min_samples: int) -> list[BoundingBox]:
    """Density-cluster boxes under the 1 - IoU distance and average each cluster.

    Two boxes are neighbours when their IoU is at least *min_iou*. *min_samples*
    counts the box itself, as in scikit-learn. Noise boxes are dropped.
    """
    if not boxes:
        return []
    eps = max(1.0 - min_iou, 0.0) + _EPS_TOLERANCE
    labels = DBSCAN(eps=eps, min_samples=min_samples, metric="precomputed").fit(
        iou_distance_matrix(boxes)
    ).labels_

    clusters: dict[int, list[BoundingBox]] = {}
    for box, label in zip(boxes, labels):
        if label == -1:
            continue
        clusters.setdefault(int(label), []).append(box)

    result = [average_box(members) for _, members in sorted(clusters.items())]
    log.debug(f"Clustered {len(boxes)} boxes into {len(result)} clusters (min IoU {min_iou})")
    return result
