"""
Tests for the letterbox geometry.
"""

import pytest

from facescrub.letterbox import LetterboxInfo, compute_letterbox


def test_square_image_needs_no_padding():
    """Test that a square image fills the canvas."""
    info = compute_letterbox(320, 320, 640)
    assert info == LetterboxInfo(
        target=640, scale=2.0, pad_x=0.0, pad_y=0.0, resized_w=640, resized_h=640
    )


def test_landscape_image_is_padded_vertically():
    """Test centered vertical padding for a wide image."""
    info = compute_letterbox(400, 200, 640)
    assert info.scale == pytest.approx(1.6)
    assert (info.resized_w, info.resized_h) == (640, 320)
    assert info.pad_x == 0.0
    assert info.pad_y == 160.0


def test_portrait_image_is_padded_horizontally():
    """Test centered horizontal padding for a tall image."""
    info = compute_letterbox(200, 400, 640)
    assert (info.resized_w, info.resized_h) == (320, 640)
    assert info.pad_x == 160.0
    assert info.pad_y == 0.0


def test_resized_dimensions_round_and_stay_on_canvas():
    """Test rounding of resized dimensions and floor of the pad."""
    info = compute_letterbox(333, 100, 640)
    assert info.resized_w == 640
    assert info.resized_h == 192
    assert info.pad_y == 224.0
    assert info.resized_w <= info.target and info.resized_h <= info.target


def test_small_side_bias_shifts_short_axis():
    """Test that pad_small_side biases the axis of the smaller dimension."""
    info = compute_letterbox(400, 200, 640, pad_small_side=20, pad_large_side=10)
    assert info.pad_y == 180.0
    # The long axis has no free space, so its bias clamps away.
    assert info.pad_x == 0.0


def test_large_side_bias_applies_to_long_axis():
    """Test that pad_large_side biases the axis of the larger dimension."""
    info = compute_letterbox(200, 100, 64, pad_large_side=5)
    # resized 64x32; x has no free space, y keeps its centered pad.
    assert info.pad_x == 0.0
    assert info.pad_y == 16.0

    square = compute_letterbox(100, 100, 64, pad_small_side=9, pad_large_side=0)
    assert (square.pad_x, square.pad_y) == (0.0, 0.0)


def test_bias_is_clamped_to_free_space():
    """Test that a large bias never pushes the image off the canvas."""
    info = compute_letterbox(400, 200, 640, pad_small_side=1000)
    assert info.pad_y == 320.0
    assert info.pad_y + info.resized_h <= info.target


def test_non_positive_target_rejected():
    """Test that a non-positive target is a configuration error."""
    with pytest.raises(ValueError, match="target"):
        compute_letterbox(100, 100, 0)
    with pytest.raises(ValueError, match="target"):
        compute_letterbox(100, 100, -32)


def test_non_positive_image_rejected():
    """Test that empty image dimensions are rejected."""
    with pytest.raises(ValueError, match="dimensions"):
        compute_letterbox(0, 100, 640)


def test_negative_bias_rejected():
    """Test that negative pad biases are rejected."""
    with pytest.raises(ValueError, match="biases"):
        compute_letterbox(100, 50, 640, pad_small_side=-1)


def test_sides_round_half_up():
    """Test that a .5 resized side rounds up and the pad absorbs it."""
    info = compute_letterbox(1280, 721, 640)
    assert info.resized_h == 361
    assert info.pad_y == 139.0


def test_extreme_aspect_keeps_one_pixel():
    """Test that a 1 px wide image still gets a non-empty resized side."""
    info = compute_letterbox(1, 2000, 640)
    assert info.resized_w == 1
    assert info.resized_h == 640
    assert info.pad_x == 319.0
    assert info.pad_y == 0.0
