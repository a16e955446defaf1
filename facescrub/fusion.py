"""
Cross-pass fusion of face candidates.

Responsibility:
    Merge the candidates of the normal pass and (optionally) the flipped
    pass into one de-duplicated list. This is the pipeline's only
    de-duplication step, so it also runs when there is a single pass.

Algorithm:
    Candidates are sorted by score (descending, stable). Each candidate not
    yet claimed seeds a cluster and claims every remaining candidate that
    overlaps the seed. A cluster collapses to the seed's geometry with the
    highest member score. Geometry is never averaged.
"""

import logging
import math
from typing import List, Optional, Sequence

from facescrub.detection import FaceBox

logger = logging.getLogger(__name__)

DEFAULT_FUSION_IOU = 0.4


def _intersection(a: FaceBox, b: FaceBox) -> float:
    w = min(a.x1, b.x1) - max(a.x, b.x)
    h = min(a.y1, b.y1) - max(a.y, b.y)
    return max(0.0, w) * max(0.0, h)


def iou(a: FaceBox, b: FaceBox) -> float:
    """Intersection over union of two boxes (0 when the union is empty)."""
    inter = _intersection(a, b)
    union = a.area + b.area - inter
    return inter / union if union > 0 else 0.0


def containment(a: FaceBox, b: FaceBox) -> float:
    """Intersection over the smaller box's area."""
    smaller = min(a.area, b.area)
    return _intersection(a, b) / smaller if smaller > 0 else 0.0


def center_distance(a: FaceBox, b: FaceBox) -> float:
    """Center distance relative to the smaller box's mean side."""
    dx = (a.x + a.w / 2) - (b.x + b.w / 2)
    dy = (a.y + a.h / 2) - (b.y + b.h / 2)
    size = min((a.w + a.h) / 2, (b.w + b.h) / 2)
    return math.hypot(dx, dy) / size if size > 0 else math.inf


def _same_face(
    seed: FaceBox,
    cand: FaceBox,
    iou_threshold: float,
    contain_threshold: float,
    center_threshold: float,
) -> bool:
    if iou(seed, cand) > iou_threshold:
        return True
    if contain_threshold and containment(seed, cand) > contain_threshold:
        return True
    if center_threshold and center_distance(seed, cand) < center_threshold:
        return True
    return False


def fuse(
    list_a: Sequence[FaceBox],
    list_b: Optional[Sequence[FaceBox]] = None,
    iou_threshold: float = DEFAULT_FUSION_IOU,
    contain_threshold: float = 0.0,
    center_threshold: float = 0.0,
    max_faces: Optional[int] = None,
) -> List[FaceBox]:
    """Cluster overlapping candidates from one or two passes.

    Args:
        list_a: Candidates from the normal pass.
        list_b: Candidates from the flipped pass, or None.
        iou_threshold: IoU above which a candidate joins the seed's cluster.
        contain_threshold: Containment above which a candidate joins.
                           0 disables.
        center_threshold: Relative center distance below which a candidate
                          joins. 0 disables.
        max_faces: Keep at most this many clusters. None keeps all.

    Returns:
        One FaceBox per cluster, in descending score order.
    """
    candidates = list(list_a) + list(list_b or [])
    if not candidates:
        return []

    order = sorted(candidates, key=lambda f: f.score, reverse=True)
    claimed = [False] * len(order)
    fused: List[FaceBox] = []

    for i, seed in enumerate(order):
        if claimed[i]:
            continue
        claimed[i] = True
        best = seed.score

        for j in range(i + 1, len(order)):
            if claimed[j]:
                continue
            cand = order[j]
            if _same_face(seed, cand, iou_threshold, contain_threshold, center_threshold):
                claimed[j] = True
                best = max(best, cand.score)

        fused.append(FaceBox(x=seed.x, y=seed.y, w=seed.w, h=seed.h, score=best))
        if max_faces is not None and len(fused) >= max_faces:
            break

    logger.debug("Fused %d candidates into %d faces", len(candidates), len(fused))
    return fused
