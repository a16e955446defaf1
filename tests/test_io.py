"""
Tests for input/output handling and serialization.
"""

import csv
import json
from pathlib import Path

import cv2
import numpy as np
import pytest

from facescrub.config import AppConfig, OutputConfig
from facescrub.detection import FaceBox
from facescrub.input_handler import InputHandler
from facescrub.output_handler import OutputHandler
from facescrub.serializer import save_csv, save_json


def _write_image(path: Path, value: int = 0) -> Path:
    assert cv2.imwrite(str(path), np.full((10, 12, 3), value, dtype=np.uint8))
    return path


def test_single_image_source(tmp_path):
    """Test iterating a single image file."""
    path = _write_image(tmp_path / "one.png")
    handler = InputHandler(str(path))

    items = list(handler)

    assert len(handler) == 1
    assert len(items) == 1
    image_id, item_path, frame = items[0]
    assert image_id == 0
    assert item_path == path
    assert frame.shape == (10, 12, 3)


def test_directory_source_sorted_and_filtered(tmp_path):
    """Test that a directory yields images in name order, skipping others."""
    _write_image(tmp_path / "b.png")
    _write_image(tmp_path / "a.jpg")
    (tmp_path / "notes.txt").write_text("not an image")

    handler = InputHandler(str(tmp_path))

    assert [p.name for _, p, _ in handler] == ["a.jpg", "b.png"]


def test_unreadable_image_is_skipped(tmp_path):
    """Test that a corrupt image is logged and skipped."""
    _write_image(tmp_path / "good.png")
    (tmp_path / "bad.jpg").write_bytes(b"definitely not a jpeg")

    handler = InputHandler(str(tmp_path))
    items = list(handler)

    assert len(handler) == 2
    assert [p.name for _, p, _ in items] == ["good.png"]
    assert items[0][0] == 1


def test_missing_source(tmp_path):
    """Test FileNotFoundError for a missing source."""
    with pytest.raises(FileNotFoundError):
        InputHandler(str(tmp_path / "nowhere"))


def test_bad_sources_rejected(tmp_path):
    """Test ValueError for non-image files and empty directories."""
    text = tmp_path / "readme.txt"
    text.write_text("hello")
    with pytest.raises(ValueError, match="extension"):
        InputHandler(str(text))

    empty = tmp_path / "empty"
    empty.mkdir()
    with pytest.raises(ValueError, match="No image files"):
        InputHandler(str(empty))


def test_output_handler_all_modes(tmp_path):
    """Test redacted images plus JSON and CSV exports."""
    out_dir = tmp_path / "out"
    config = AppConfig(
        output=OutputConfig(mode="save_image,save_json,save_csv", save_path=str(out_dir))
    )
    handler = OutputHandler(config)
    frame = np.zeros((40, 40, 3), dtype=np.uint8)
    faces = [FaceBox(5.0, 6.0, 10.0, 12.0, 0.91234)]

    handler.process_image(Path("photo.png"), frame, faces)
    handler.process_image(Path("empty.png"), frame, [])
    handler.finalize()

    assert (out_dir / "photo_redacted.png").is_file()
    assert (out_dir / "empty_redacted.png").is_file()

    payload = json.loads((out_dir / "faces.json").read_text(encoding="utf-8"))
    assert payload["total_images"] == 2
    assert payload["total_faces"] == 1
    assert payload["images"][1]["faces"][0] == {
        "x": 5.0, "y": 6.0, "w": 10.0, "h": 12.0, "score": 0.9123,
    }

    with open(out_dir / "faces.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["image"] == "photo.png"


def test_output_handler_json_only_skips_images(tmp_path):
    """Test that only the configured sinks are written."""
    config = AppConfig(output=OutputConfig(mode="save_json", save_path=str(tmp_path)))
    handler = OutputHandler(config)

    handler.process_image(Path("a.png"), np.zeros((8, 8, 3), dtype=np.uint8), [])
    handler.finalize()

    assert sorted(p.name for p in tmp_path.iterdir()) == ["faces.json"]


def test_serializers_create_parent_dirs(tmp_path):
    """Test that exports create missing parent directories."""
    faces = {"x.jpg": [FaceBox(1, 2, 3, 4, 0.5)]}
    json_path = tmp_path / "nested" / "deeper" / "faces.json"
    csv_path = tmp_path / "other" / "faces.csv"

    save_json(faces, str(json_path))
    save_csv(faces, str(csv_path))

    assert json.loads(json_path.read_text(encoding="utf-8"))["total_faces"] == 1
    assert csv_path.read_text(encoding="utf-8").splitlines()[0] == "image,x,y,w,h,score"
