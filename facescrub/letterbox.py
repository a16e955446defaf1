"""
Letterbox geometry for the face detection pipeline.

Responsibility:
    Compute the scale and padding that fit an arbitrary W x H image into
    the fixed square network input while preserving aspect ratio. The
    same LetterboxInfo drives both pixel preprocessing and the inverse
    mapping of decoded boxes, so the two can never disagree.

Non-goals:
    - No pixel operations (see preprocessor).
    - No non-square network inputs.

Padding bias:
    Base padding centers the resized image. pad_small_side is then added
    to the leading (left/top) pad of the axis along the smaller original
    dimension and pad_large_side to the axis along the larger one. A
    square image has no smaller axis, so both axes take pad_large_side.
    The biased pad is clamped to [0, target - resized].

Rounding:
    Resized sizes and biases round half up (640 * 721 / 1280 = 360.5 -> 361),
    and each resized side is at least one pixel.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LetterboxInfo:
    """Mapping between original-image pixels and network input pixels.

    Attributes:
        target: Side of the square network input.
        scale: Resize factor applied to the original image.
        pad_x: Left padding in network pixels.
        pad_y: Top padding in network pixels.
        resized_w: Width of the resized image on the canvas.
        resized_h: Height of the resized image on the canvas.
    """

    target: int
    scale: float
    pad_x: float
    pad_y: float
    resized_w: int
    resized_h: int


def compute_letterbox(
    orig_w: int,
    orig_h: int,
    target: int,
    pad_small_side: float = 0.0,
    pad_large_side: float = 0.0,
) -> LetterboxInfo:
    """Compute letterbox parameters for one pass.

    Args:
        orig_w: Original image width in pixels.
        orig_h: Original image height in pixels.
        target: Side of the square network input.
        pad_small_side: Extra leading pad (network pixels) on the axis of
                        the smaller original dimension.
        pad_large_side: Extra leading pad (network pixels) on the axis of
                        the larger original dimension.

    Returns:
        A LetterboxInfo for the given dimensions.

    Raises:
        ValueError: If target or the original dimensions are not positive,
                    or if a pad bias is negative.
    """
    if target <= 0:
        raise ValueError(f"Letterbox target must be positive, got {target}.")
    if orig_w <= 0 or orig_h <= 0:
        raise ValueError(
            f"Image dimensions must be positive, got {orig_w}x{orig_h}."
        )
    if pad_small_side < 0 or pad_large_side < 0:
        raise ValueError(
            f"Pad biases must be >= 0, got small={pad_small_side}, "
            f"large={pad_large_side}."
        )

    scale = target / max(orig_w, orig_h)
    # Extreme aspect ratios still keep one pixel on the short axis.
    resized_w = max(1, min(target, _round_half_up(orig_w * scale)))
    resized_h = max(1, min(target, _round_half_up(orig_h * scale)))

    if orig_w < orig_h:
        bias_x, bias_y = pad_small_side, pad_large_side
    elif orig_h < orig_w:
        bias_x, bias_y = pad_large_side, pad_small_side
    else:
        bias_x = bias_y = pad_large_side

    pad_x = _biased_pad(target, resized_w, bias_x)
    pad_y = _biased_pad(target, resized_h, bias_y)

    return LetterboxInfo(
        target=target,
        scale=scale,
        pad_x=float(pad_x),
        pad_y=float(pad_y),
        resized_w=resized_w,
        resized_h=resized_h,
    )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _biased_pad(target: int, resized: int, bias: float) -> int:
    """Centered pad plus bias, clamped so the image stays on the canvas."""
    free = target - resized
    pad = math.floor(free / 2) + _round_half_up(bias)
    return max(0, min(pad, free))
