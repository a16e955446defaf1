"""
Postprocessing for the face detection pipeline.

Responsibility:
    Parse the raw detector output tensor for one pass into a list of
    FaceBox objects in original-image pixels. Apply score thresholding,
    the cheap size/aspect prefilter, letterbox inversion, flip mirroring
    and boundary clamping.

Non-goals:
    - No de-duplication (fusion runs on the combined passes).
    - No drawing, saving, or display logic.
    - No model loading or inference.

Supported head layouts (per image, batch axis optional):
    - DFL head, rows of 4 * reg_max + 1 values: [l bins, t bins, r bins,
      b bins, score logit], one row per anchor over strides 8/16/32.
    - End-to-end head, rows of 6: [x0, y0, x1, y1, score, class].
    - Center-size head, rows of 5+: [cx, cy, w, h, score, extras...].
    Rows may arrive as (N, E) or channels-first (E, N).
"""

import logging
import math
from typing import List, Optional, Tuple

import numpy as np

from facescrub.anchors import DEFAULT_STRIDES, anchor_count, iter_anchors
from facescrub.config import DetectionConfig
from facescrub.detection import DecodedBox, FaceBox
from facescrub.dfl import decode_row, row_width, sigmoid
from facescrub.letterbox import LetterboxInfo

logger = logging.getLogger(__name__)

# Attribute counts accepted for direct (non-DFL) heads.
_MIN_ATTRS = 5
_MAX_ATTRS = 128

# Extra attribute counts that carry landmarks rather than class scores.
_LANDMARK_EXTRAS = {10, 15}

# Coordinates inside this range are taken as normalized to [0, 1].
_NORM_LOW = -0.5
_NORM_HIGH = 1.5


# ---------------------------------------------------------------------------
# Tensor adapter
# ---------------------------------------------------------------------------

def to_float_array(tensor) -> np.ndarray:
    """Convert a tensor-like object into a float32 ndarray.

    Accepts NumPy arrays, nested sequences, and duck-typed tensors that
    expose a flat ``data`` buffer plus a ``dims`` shape (the shape the
    browser and ONNX Runtime Web tensors use).
    """
    if isinstance(tensor, np.ndarray):
        return tensor.astype(np.float32, copy=False)

    if hasattr(tensor, "data") and hasattr(tensor, "dims"):
        dims = tuple(int(d) for d in tensor.dims)
        flat = np.asarray(tensor.data, dtype=np.float32).reshape(-1)
        expected = int(np.prod(dims)) if dims else 0
        if flat.size != expected:
            raise ValueError(
                f"Tensor data has {flat.size} values but dims {list(dims)} "
                f"require {expected}."
            )
        return flat.reshape(dims)

    return np.asarray(tensor, dtype=np.float32)


def _looks_like_dfl(attrs: int) -> bool:
    return (attrs - 1) % 4 == 0 and (attrs - 1) // 4 >= 2


def _as_rows(preds: np.ndarray, target: int) -> np.ndarray:
    """Normalize an output tensor to (rows, attributes)."""
    p = preds
    if p.ndim == 3:
        if p.shape[0] != 1:
            raise ValueError(
                f"Batch > 1 is not supported (got shape {p.shape}). "
                f"Pass one image at a time."
            )
        p = p[0]

    if p.ndim != 2:
        raise ValueError(f"Unsupported output shape: {preds.shape}")

    expected_n = anchor_count(target)
    a, b = p.shape

    if b == expected_n and a != expected_n:
        return p.T
    if a == expected_n:
        return p

    a_fits = _MIN_ATTRS <= a <= _MAX_ATTRS
    b_fits = _MIN_ATTRS <= b <= _MAX_ATTRS
    if a_fits and b_fits:
        return p if b <= a else p.T
    if b_fits:
        return p
    if a_fits:
        return p.T

    raise ValueError(
        f"Cannot interpret output shape {preds.shape}: expected {expected_n} "
        f"anchor rows or {_MIN_ATTRS}-{_MAX_ATTRS} attributes per row."
    )


# ---------------------------------------------------------------------------
# Prefilter
# ---------------------------------------------------------------------------

def _passes_prefilter(
    width: float,
    height: float,
    min_side: float,
    ar_min: float,
    ar_max: float,
) -> bool:
    """Cheap size and aspect gate applied in network space."""
    if max(width, height) < min_side:
        return False
    if (ar_min or ar_max) and height > 0:
        aspect = width / height
        if ar_min and aspect < ar_min:
            return False
        if ar_max and aspect > ar_max:
            return False
    return True


# ---------------------------------------------------------------------------
# Pyramid walker (DFL heads)
# ---------------------------------------------------------------------------

def walk_pyramid(
    rows: np.ndarray,
    target: int,
    reg_max: int,
    score_threshold: float,
    min_side_ratio: float = 0.0,
    aspect_ratio_range: Tuple[float, float] = (0.0, 0.0),
) -> List[DecodedBox]:
    """Decode DFL rows into network-space boxes.

    Args:
        rows: Array of shape (N, 4 * reg_max + 1), N = anchor_count(target).
        target: Side of the square network input.
        reg_max: DFL bins per side.
        score_threshold: Keep rows whose sigmoid score is strictly above.
        min_side_ratio: Minimum longer side as a fraction of target.
        aspect_ratio_range: (min, max) w/h bounds; 0 disables a bound.

    Returns:
        Candidate boxes in row order. No de-duplication is done here.
    """
    if rows.shape[0] != anchor_count(target, DEFAULT_STRIDES):
        raise ValueError(
            f"DFL head has {rows.shape[0]} rows, expected "
            f"{anchor_count(target, DEFAULT_STRIDES)} for target {target}."
        )

    # Scores first so only candidate rows pay for the softmax.
    scores = sigmoid(rows[:, -1])
    candidates = scores > score_threshold
    if not np.any(candidates):
        return []

    min_side = min_side_ratio * target
    ar_min, ar_max = aspect_ratio_range
    boxes: List[DecodedBox] = []

    for index, anchor in enumerate(iter_anchors(target, DEFAULT_STRIDES)):
        if not candidates[index]:
            continue

        dist = decode_row(rows[index], reg_max)
        cx, cy = anchor.center
        s = anchor.stride
        box = DecodedBox(
            x0=cx - dist.l * s,
            y0=cy - dist.t * s,
            x1=cx + dist.r * s,
            y1=cy + dist.b * s,
            score=float(scores[index]),
        )

        if not _passes_prefilter(box.width, box.height, min_side, ar_min, ar_max):
            continue
        boxes.append(box)

    return boxes


# ---------------------------------------------------------------------------
# Direct heads (already box-decoded)
# ---------------------------------------------------------------------------

def _activate(values: np.ndarray) -> np.ndarray:
    """Probabilities pass through; anything outside [0, 1] is a logit."""
    values = values.astype(np.float64)
    is_logit = (values < 0.0) | (values > 1.0)
    return np.where(is_logit, sigmoid(values), values)


def decode_direct(
    rows: np.ndarray,
    target: int,
    score_threshold: float,
    force_normalized: bool = False,
    min_side_ratio: float = 0.0,
    aspect_ratio_range: Tuple[float, float] = (0.0, 0.0),
) -> List[DecodedBox]:
    """Decode rows from a head that already regresses boxes.

    Rows of width 6 are corner boxes with a trailing class column; any
    other width >= 5 is center-size with optional extras.
    """
    attrs = rows.shape[1]
    if attrs < _MIN_ATTRS:
        raise ValueError(f"Direct head rows need >= {_MIN_ATTRS} values, got {attrs}.")

    coords = rows[:, :4].astype(np.float64)
    if coords.size == 0:
        return []

    normalized = force_normalized or bool(
        np.all((coords >= _NORM_LOW) & (coords <= _NORM_HIGH))
    )
    if normalized:
        coords = coords * target

    scores = _activate(rows[:, 4])
    extras = attrs - 5
    corner_form = attrs == 6
    if extras > 0 and not corner_form and extras not in _LANDMARK_EXTRAS:
        scores = scores * np.max(_activate(rows[:, 5:]), axis=1)

    if corner_form:
        x0, y0, x1, y1 = coords.T
    else:
        cx, cy, w, h = coords.T
        x0, y0 = cx - w / 2, cy - h / 2
        x1, y1 = cx + w / 2, cy + h / 2

    min_side = min_side_ratio * target
    ar_min, ar_max = aspect_ratio_range
    boxes: List[DecodedBox] = []

    for i in np.flatnonzero(scores > score_threshold):
        box = DecodedBox(
            x0=float(min(x0[i], x1[i])),
            y0=float(min(y0[i], y1[i])),
            x1=float(max(x0[i], x1[i])),
            y1=float(max(y0[i], y1[i])),
            score=float(scores[i]),
        )
        if not _passes_prefilter(box.width, box.height, min_side, ar_min, ar_max):
            continue
        boxes.append(box)

    return boxes


# ---------------------------------------------------------------------------
# Coordinate unmapping
# ---------------------------------------------------------------------------

def to_image_space(
    box: DecodedBox,
    letterbox: LetterboxInfo,
    flipped: bool,
    orig_w: float,
) -> Optional[FaceBox]:
    """Map a network-space box back to original-image pixels.

    Inverts the letterbox scale and padding. For the flipped pass the box
    is mirrored around the vertical axis of the original image.

    Returns:
        The FaceBox, or None when the result is non-finite or has
        non-positive width/height.
    """
    x0 = (box.x0 - letterbox.pad_x) / letterbox.scale
    x1 = (box.x1 - letterbox.pad_x) / letterbox.scale
    y0 = (box.y0 - letterbox.pad_y) / letterbox.scale
    y1 = (box.y1 - letterbox.pad_y) / letterbox.scale

    if flipped:
        x0, x1 = orig_w - x1, orig_w - x0
    x0, x1 = min(x0, x1), max(x0, x1)

    w = x1 - x0
    h = y1 - y0
    if not all(math.isfinite(v) for v in (x0, y0, w, h, box.score)):
        return None
    if w <= 0 or h <= 0:
        return None

    return FaceBox(x=x0, y=y0, w=w, h=h, score=box.score)


def clip_to_image(face: FaceBox, orig_w: float, orig_h: float) -> Optional[FaceBox]:
    """Clamp a box to the image bounds; None if nothing is left."""
    x0 = min(max(face.x, 0.0), orig_w)
    y0 = min(max(face.y, 0.0), orig_h)
    x1 = min(max(face.x1, 0.0), orig_w)
    y1 = min(max(face.y1, 0.0), orig_h)

    if x1 - x0 <= 0 or y1 - y0 <= 0:
        return None
    return FaceBox(x=x0, y=y0, w=x1 - x0, h=y1 - y0, score=face.score)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def decode_yolo_output(
    tensor,
    letterbox: LetterboxInfo,
    orig_w: int,
    orig_h: int,
    score_threshold: float,
    *,
    flipped: bool = False,
    config: DetectionConfig = DetectionConfig(),
    reg_max: Optional[int] = None,
) -> List[FaceBox]:
    """Decode one pass's raw output tensor into original-image FaceBoxes.

    Args:
        tensor: Raw model output (ndarray or tensor-like with data/dims).
        letterbox: Letterbox parameters used to build this pass's input.
        orig_w: Original image width in pixels.
        orig_h: Original image height in pixels.
        score_threshold: Minimum score (exclusive) to keep a candidate.
        flipped: True when the input was horizontally mirrored.
        config: Prefilter and layout options.
        reg_max: DFL bins per side. None infers it from the row width.

    Returns:
        List of FaceBox in tensor row order (not de-duplicated).
        Empty list if nothing clears the threshold.

    Raises:
        ValueError: If the tensor shape does not match the expected head.
    """
    target = letterbox.target
    rows = _as_rows(to_float_array(tensor), target)
    attrs = rows.shape[1]
    aspect = (config.prefilter_ar_min, config.prefilter_ar_max)

    if reg_max is not None:
        if attrs != row_width(reg_max):
            raise ValueError(
                f"Output rows have {attrs} values, expected {row_width(reg_max)} "
                f"for reg_max={reg_max}."
            )
        is_dfl = True
    else:
        is_dfl = _looks_like_dfl(attrs)

    if is_dfl:
        decoded = walk_pyramid(
            rows,
            target,
            (attrs - 1) // 4,
            score_threshold,
            min_side_ratio=config.prefilter_min_side_ratio,
            aspect_ratio_range=aspect,
        )
    else:
        decoded = decode_direct(
            rows,
            target,
            score_threshold,
            force_normalized=config.force_center_norm,
            min_side_ratio=config.prefilter_min_side_ratio,
            aspect_ratio_range=aspect,
        )

    faces: List[FaceBox] = []
    for box in decoded:
        face = to_image_space(box, letterbox, flipped, orig_w)
        if face is not None:
            face = clip_to_image(face, orig_w, orig_h)
        if face is None:
            logger.debug("Dropped degenerate box %s", box)
            continue
        faces.append(face)

    logger.debug(
        "Decoded %d/%d candidates (flipped=%s, rows=%d, attrs=%d)",
        len(faces), len(decoded), flipped, rows.shape[0], attrs,
    )
    return faces
