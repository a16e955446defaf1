"""
Redaction rendering for the face redaction pipeline.

Responsibility:
    Blur detected faces on a copy of the frame. This is a pure rendering
    module: it returns a new image and performs no I/O.

Non-goals:
    - No file writing, window management, or display logic.
    - No detection or model logic.
"""

import math
from typing import List, Tuple

import cv2
import numpy as np

from facescrub.config import RedactionConfig
from facescrub.detection import FaceBox

# Blur radius at strength 100.
_MAX_BLUR_PX = 40


def blur_radius(strength: int) -> int:
    """Map a 0-100 strength to a blur radius in pixels (at least 1)."""
    return max(1, int(round(strength / 100 * _MAX_BLUR_PX)))


def pad_ratio_for(face: FaceBox, config: RedactionConfig) -> float:
    """Box expansion ratio, interpolated on the face's shorter side."""
    side = min(face.w, face.h)
    if side <= config.small_face_side:
        return config.pad_ratio_at_small
    if side >= config.large_face_side:
        return config.pad_ratio_at_large

    t = (side - config.small_face_side) / (config.large_face_side - config.small_face_side)
    return config.pad_ratio_at_small + t * (config.pad_ratio_at_large - config.pad_ratio_at_small)


def redaction_region(
    face: FaceBox,
    config: RedactionConfig,
    frame_w: int,
    frame_h: int,
) -> Tuple[int, int, int, int]:
    """Padded, shifted and clipped region (x0, y0, x1, y1) to blur."""
    pad = pad_ratio_for(face, config)
    dx = face.w * pad
    dy = face.h * pad
    shift = face.h * config.vertical_shift

    x0 = max(0, math.floor(face.x - dx))
    y0 = max(0, math.floor(face.y - dy - shift))
    x1 = min(frame_w, math.ceil(face.x1 + dx))
    y1 = min(frame_h, math.ceil(face.y1 + dy - shift))
    return x0, y0, x1, y1


def redact_faces(
    frame: np.ndarray,
    faces: List[FaceBox],
    config: RedactionConfig,
) -> np.ndarray:
    """Blur every face region on a copy of the frame.

    Each region is blurred from a patch that extends a margin of twice the
    blur radius past the region, then only the region itself is written
    back, so the edges are blurred with real neighboring pixels.

    Args:
        frame: Input BGR image. It is not modified; a copy is returned.
        faces: Faces to redact, in original-image pixels.
        config: Redaction parameters.

    Returns:
        A new BGR numpy array with the face regions blurred.
    """
    redacted = frame.copy()
    frame_h, frame_w = frame.shape[:2]
    radius = blur_radius(config.blur_strength)
    margin = 2 * radius

    for face in faces:
        x0, y0, x1, y1 = redaction_region(face, config, frame_w, frame_h)
        if x1 <= x0 or y1 <= y0:
            continue

        sx0 = max(0, x0 - margin)
        sy0 = max(0, y0 - margin)
        sx1 = min(frame_w, x1 + margin)
        sy1 = min(frame_h, y1 + margin)

        patch = frame[sy0:sy1, sx0:sx1]
        blurred = cv2.GaussianBlur(patch, (0, 0), sigmaX=radius, sigmaY=radius)
        redacted[y0:y1, x0:x1] = blurred[y0 - sy0:y1 - sy0, x0 - sx0:x1 - sx0]

    return redacted
