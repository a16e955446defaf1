"""
Preprocessing for the face detection pipeline.

Responsibility:
    Convert a raw BGR frame (numpy array) into the 4D network input blob:
    resize, letterbox onto a gray square canvas, reorder channels and
    normalize.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.
    - No geometry decisions (those come from letterbox.compute_letterbox).

Hard-coded:
    - Network input is RGB, NCHW, float32 in [0, 1].
    - Input frames are BGR (OpenCV convention).
"""

import numpy as np
import cv2

from facescrub.letterbox import LetterboxInfo


def preprocess(
    frame: np.ndarray,
    letterbox: LetterboxInfo,
    fill_value: int = 114,
) -> np.ndarray:
    """Convert a raw BGR frame into a letterboxed input blob.

    Args:
        frame: Input image as a BGR numpy array (H, W, 3).
        letterbox: Geometry computed for this frame's dimensions.
        fill_value: Gray level of the padding area.

    Returns:
        A 4D numpy array of shape (1, 3, target, target) with dtype
        float32, ready to be fed to the inference session.

    Raises:
        ValueError: If the frame is empty or has unexpected dimensions.
    """
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    h, w = frame.shape[:2]
    target = letterbox.target
    size = (letterbox.resized_w, letterbox.resized_h)

    if (w, h) != size:
        frame = cv2.resize(frame, size, interpolation=cv2.INTER_LINEAR)

    canvas = np.full((target, target, 3), fill_value, dtype=np.uint8)
    left = int(letterbox.pad_x)
    top = int(letterbox.pad_y)
    canvas[top:top + size[1], left:left + size[0]] = frame

    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = canvas[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.transpose(blob, (2, 0, 1))[None, ...]

    return np.ascontiguousarray(blob)


def flip_horizontal(frame: np.ndarray) -> np.ndarray:
    """Mirror a frame around its vertical axis (test-time augmentation)."""
    return frame[:, ::-1].copy()
